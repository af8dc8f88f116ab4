"""
connectors: clients for third-party services.

  • ``RawgClient``: RAWG games catalog (search, top, random, by genre)
"""
