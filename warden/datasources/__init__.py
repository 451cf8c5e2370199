"""External data sources used to ingest evidence."""
