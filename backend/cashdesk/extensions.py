# Overview: Flask extension instance for the database.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
