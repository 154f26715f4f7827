"""Transport administration backend: grievance workflow and GPS location ingestion."""

__version__ = "1.0.0"
