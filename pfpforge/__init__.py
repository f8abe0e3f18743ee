"""pfpforge - themed character collection generation and trait compositing."""

__version__ = "0.1.0"
