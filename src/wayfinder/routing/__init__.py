"""Routing: route definitions compiled into a segment trie.

Routes are added as a tree of named nodes and matched in O(path depth).
Paths are built back from a route name and params.
"""
