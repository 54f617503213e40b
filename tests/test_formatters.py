"""Tests for record formatting into JSON, CSV and XML."""

import pytest
from lxml import etree

from scrapify.common.exceptions import UnsupportedFormatError
from scrapify.data_types import OutputFormat
from scrapify.formatters import format_records, to_csv, to_xml


class TestCsv:
    """Tests for to_csv."""

    def test_header_follows_first_record_key_order(self):
        """The CSV header shall be the first record's keys, in order."""
        records = [{"b": 1, "a": 2, "c": 3}, {"a": 5, "b": 4, "c": 6}]

        lines = to_csv(records).split("\n")

        assert lines[0] == "b,a,c"
        assert lines[1] == "1,2,3"
        assert lines[2] == "4,5,6"

    def test_one_line_per_record_plus_header(self):
        """to_csv shall produce exactly len(records) + 1 lines with no trailing newline."""
        records = [{"n": i} for i in range(3)]

        text = to_csv(records)

        assert text.count("\n") == 3
        assert not text.endswith("\n")

    def test_empty_input_gives_empty_string(self):
        """to_csv shall return an empty string for no records."""
        assert to_csv([]) == ""

    def test_non_sequence_input_gives_empty_string(self):
        """to_csv shall return an empty string for input that isn't a record list."""
        assert to_csv({"a": 1}) == ""
        assert to_csv("a,b") == ""

    def test_values_with_commas_are_quoted(self):
        """Values containing a comma shall be wrapped in double quotes."""
        text = to_csv([{"name": "Beetle, Barry", "n": 1}])

        assert text.split("\n")[1] == '"Beetle, Barry",1'

    def test_embedded_quotes_are_doubled(self):
        """Embedded double quotes shall be doubled inside a quoted value."""
        text = to_csv([{"title": 'The "Big" Bug'}])

        assert text.split("\n")[1] == '"The ""Big"" Bug"'

    def test_newlines_are_quoted(self):
        """Values containing a line break shall be quoted."""
        text = to_csv([{"summary": "line one\nline two", "n": 1}])

        assert text == 'summary,n\n"line one\nline two",1'

    def test_missing_keys_render_empty(self):
        """Keys absent from later records shall render as empty cells."""
        text = to_csv([{"a": 1, "b": 2}, {"a": 3}])

        assert text.split("\n")[2] == "3,"

    def test_keys_only_in_later_records_are_dropped(self):
        """Keys that only appear in later records shall not add columns."""
        text = to_csv([{"a": 1}, {"a": 2, "extra": "x"}])

        assert text == "a\n1\n2"

    def test_scalar_rendering(self):
        """None shall render empty, booleans lowercase and lists as JSON."""
        text = to_csv([{"none": None, "flag": True, "off": False, "tags": ["x", "y"]}])

        assert text.split("\n")[1] == ',true,false,"[""x"",""y""]"'


class TestXml:
    """Tests for to_xml."""

    def test_structure(self):
        """Each record shall become <item id="index"> with one child per key."""
        root = etree.fromstring(to_xml([{"name": "Ant", "rank": 1}, {"name": "Bee", "rank": 2}]))

        assert root.tag == "data"
        items = root.findall("item")
        assert [i.get("id") for i in items] == ["0", "1"]
        assert items[1].findtext("name") == "Bee"
        assert items[1].findtext("rank") == "2"

    def test_special_characters_are_escaped(self):
        """Text containing <, > and & shall be escaped and round-trip intact."""
        text = to_xml([{"title": "Ants & <Bees>"}])

        assert "&amp;" in text
        assert "&lt;Bees&gt;" in text
        assert etree.fromstring(text).findtext("item/title") == "Ants & <Bees>"

    def test_invalid_element_names_are_sanitized(self):
        """Keys that aren't valid XML names shall be sanitized, not rejected."""
        root = etree.fromstring(to_xml([{"24h volume": "1", "g#": "2"}]))

        tags = [child.tag for child in root.find("item")]
        assert tags == ["_24h_volume", "g_"]

    def test_colliding_element_names_are_made_unique(self):
        """Keys that sanitize to the same name shall get distinct elements."""
        root = etree.fromstring(to_xml([{"a b": "1", "a_b": "2", "a-b": "3", "a?b": "4"}]))

        item = root.find("item")
        assert [child.tag for child in item] == ["a_b", "a_b_2", "a-b", "a_b_3"]
        assert [child.text for child in item] == ["1", "2", "3", "4"]

    def test_illegal_control_characters_are_stripped(self):
        """Characters XML 1.0 can't carry shall be removed from text."""
        root = etree.fromstring(to_xml([{"name": "bad\x00\x08char"}]))

        assert root.findtext("item/name") == "badchar"

    def test_empty_input(self):
        """An empty record list shall serialize to an empty <data/> root."""
        assert to_xml([]) == "<data/>"

    def test_non_sequence_input_is_embedded_as_json(self):
        """Non-list input shall be embedded as JSON text inside <data>."""
        root = etree.fromstring(to_xml({"a": 1}))

        assert root.text == '{"a": 1}'


class TestFormatRecords:
    """Tests for format_records dispatch."""

    def test_json_is_identity(self):
        """JSON formatting shall return the records unchanged."""
        records = [{"a": 1}]

        assert format_records(records, OutputFormat.JSON) is records
        assert format_records(format_records(records, "json"), "json") == records

    def test_dispatches_by_string(self):
        """Format names shall be accepted case-insensitively as strings."""
        assert format_records([{"a": 1}], "CSV") == "a\n1"
        assert format_records([{"a": 1}], "xml").startswith("<data>")

    def test_unknown_format_raises(self):
        """An unknown format shall raise UnsupportedFormatError."""
        with pytest.raises(UnsupportedFormatError) as exc_info:
            format_records([{"a": 1}], "yaml")

        assert exc_info.value.format == "yaml"
        assert "yaml" in exc_info.value.message
