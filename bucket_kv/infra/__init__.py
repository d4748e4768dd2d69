"""Infrastructure: object store adapter, logging, metrics and tracing."""
