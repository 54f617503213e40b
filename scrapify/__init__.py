"""
Structured record extraction from heterogeneous web sources.

Sources (static HTML pages, JSON APIs and JavaScript-rendered storefronts)
are wrapped in adapters behind one contract, registered in an immutable
catalog, and invoked through the ExtractionOrchestrator, which validates,
times and logs every attempt and formats the records as JSON, CSV or XML.
"""
