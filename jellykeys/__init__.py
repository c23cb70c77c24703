"""
Jellyfin is an excellent free and open source media server. Jellykeys
manages the API keys of a Jellyfin server: listing, looking up, creating
and revoking them, either from Python or from the command line.
"""

__version__ = "0.1.0"
