# ExpenseApp/app/models/user.py

import uuid
from datetime import datetime
from ExpenseApp.app import db


class UserRow(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = db.Column(db.String(80), nullable=False, unique=True)
    password = db.Column(db.String(255), nullable=False)  # werkzeug hash
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_row(self):
        return {
            'id': self.id,
            'username': self.username,
            'password': self.password,
            'is_admin': bool(self.is_admin),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
