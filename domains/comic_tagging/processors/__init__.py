"""
Comic Tagging Processors

Processing pipeline for a single archive:
- tagger.py - External tagger invocation
- metadata.py - Metadata extraction from tagger output
- filename.py - Target filename construction
- file_processor.py - Orchestration and untagged fallback
- work_queue.py - Bounded worker queue with per-file serialisation
"""
