"""watts-plugin-tester: conformance testing for WaTTS plugins."""

__version__ = "2.0.0"
