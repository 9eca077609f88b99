"""
live-harvester: incremental harvesting of live, segmented media streams.

Each call to ``HarvestCycle.run`` reconciles the current segment index against
the continuity token from the previous cycle, fetches, merges and decrypts the
new segments, and advances a bounded rolling HLS playlist per track.
"""

__version__ = "0.1.0"
