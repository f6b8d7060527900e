"""
Comic Tagging Collectors

Long-running services that feed files into the processing pipeline:
- watcher.py - Directory watch that enqueues newly created archives
- retry.py - Periodic rescan of files marked " [untagged]"
"""
