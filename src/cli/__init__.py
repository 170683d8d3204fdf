"""Command-line tools for the Sipuraya ingestion pipeline.

- ``python -m src.cli.ingest`` -- ingest document pairs, audit and
  inspect the story store.
"""
