"""
Intern Training Tracker
SQLAlchemy database instance shared by every model module.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
