"""
Document processing pipeline.

Extraction, chunking and embedding tasks plus the DocumentPipeline
orchestrator that drives a single ingestion job to a terminal state.
"""
