"""Source adapters: raw actions from HiveSQL and daily prices from CryptoCompare.

Both adapters raise `SourceUnavailable` on failure and leave retrying to the
caller.
"""
