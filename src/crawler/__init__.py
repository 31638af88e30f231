"""
Wikidata crawling for WikiGraph.

Input sanitization, the SPARQL transport, QID resolution, batched
connection fetching and interactive entity search.
"""
