"""
api: HTTP routers other than auth.

  • communities, posts, comments and likes
  • game catalog proxy (``/api/games``)
  • image uploads
  • global middleware / exception handlers
"""
