"""
Knowledge graph construction and querying for WikiGraph.

This module provides layered Wikidata crawling into nodes and edges,
edge categorization, shortest paths between seeds, edge consolidation
and crawl time estimates.
"""
