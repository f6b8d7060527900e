"""
Comic Tagging Domain

Monitors an incoming directory for comic archives and renames them from
their embedded metadata:
- Archives are tagged online by an external tagger (ComicTagger CLI)
- The tagger's metadata dump is parsed into series / volume / issue / year
- Files are renamed to "<series>[ Vol.<volume>] #<issue> (<year>)<ext>"

Files that cannot be tagged carry a " [untagged]" suffix in their name and
are retried periodically. The file name is the only persisted state.
"""

__all__ = ["collectors", "processors"]
