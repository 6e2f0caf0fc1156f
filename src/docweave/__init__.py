"""docweave - segment, index and cross-reference concatenated markdown corpora."""

__version__ = "0.1.0"
