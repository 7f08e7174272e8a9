"""oracle-sentinel: multi-oracle crypto price aggregation and threshold alerting."""

__version__ = "0.1.0"
