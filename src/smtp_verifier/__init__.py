"""Transport selection and delivery verification for outbound email."""

__version__ = "0.1.0"
