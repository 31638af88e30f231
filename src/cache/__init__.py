"""
Caching layers for the WikiGraph engine.

Provides the persistent TTL cache (QID resolutions and per-entity connection
lists) on top of pluggable key-value stores, and the short-lived in-process
response cache for whole generated graphs and search results.
"""
