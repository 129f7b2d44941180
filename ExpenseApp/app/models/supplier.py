# ExpenseApp/app/models/supplier.py

import uuid
from datetime import datetime
from ExpenseApp.app import db


class SupplierRow(db.Model):
    __tablename__ = 'suppliers'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(150), nullable=False)
    default_payment_method = db.Column(db.String(20), nullable=False, default='contanti')  # contanti, bonifico

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_row(self):
        return {
            'id': self.id,
            'name': self.name,
            'default_payment_method': self.default_payment_method,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
