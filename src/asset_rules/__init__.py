"""Access-rule checks for the asset manager's Firestore database."""

__version__ = "0.1.0"
