"""Firebase app initialization, shared by every entry point."""

from firebase_admin import initialize_app

app = initialize_app()
