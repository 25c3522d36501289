"""replfeed: customizable feedback modes for interactive tools."""

__version__ = "0.1.0"
