"""feedrelay: filtering Atom feed relay and video-to-podcast bridge."""

__version__ = "0.1.0"
