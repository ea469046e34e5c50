"""
Issue Graph: recommends open-source issues by linking them to source files
in a Neo4j graph and translating free-text questions into graph filters.
"""

__version__ = "0.1.0"
