"""
auth — User authentication module.

Provides:
  • Signed session token issuance & verification
  • Password hashing (bcrypt)
  • Credential store (SQLAlchemy / in-memory)
  • Signup / login / logout / verify API routes
  • ``require_user`` FastAPI dependency
"""
