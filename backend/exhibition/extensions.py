# Overview: Flask extension instances shared by the models, services and app factory.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()  # `flask db ...` schema migrations

# Largest value a signed 64-bit INTEGER column (and SQLite bind) accepts
MAX_DB_INTEGER = 2**63 - 1
