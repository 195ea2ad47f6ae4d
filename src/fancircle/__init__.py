"""fancircle: a football community graph.

Fans, clubs and journalists publish posts; feeds are derived from the social
graph (favourite teams, friendships, likes and comments) stored in Neo4j.
"""

__version__ = "0.1.0"
