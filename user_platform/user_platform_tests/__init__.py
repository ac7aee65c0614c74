"""
user_service package tests

The user_service package contains the backend of the user account service:

- FastAPI application (`main.py`) and routers (`routes/`)
- SQLAlchemy models, persistence and database integration (`models.py`, `store.py`, `db.py`)
- Password hashing, random tokens and JWT logic (`auth.py`)
- Field validation (`validation.py`) and the account flows (`accounts.py`)
- Outgoing mail (`mailer.py`, `templates.py`)
"""
