"""Shared Flask extension instances."""

from __future__ import annotations

from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_sqlalchemy import SQLAlchemy

db: SQLAlchemy = SQLAlchemy()
cors: CORS = CORS()
limiter: Limiter = Limiter(key_func=get_remote_address)
