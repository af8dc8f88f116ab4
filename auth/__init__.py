"""
auth: User authentication module.

Provides:
  • Password hashing (bcrypt)
  • JWT session tokens (``TokenService``)
  • Register / Login / Logout / Profile API routes
  • ``get_current_user`` and ``get_optional_user`` FastAPI dependencies
"""
