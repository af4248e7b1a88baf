"""
API route modules.

Import all route modules here for easy access.
"""

from sermonvault.api.routes import auth, chat, pdf, process_sermon, sermons, upload

__all__ = ["auth", "chat", "pdf", "process_sermon", "sermons", "upload"]
