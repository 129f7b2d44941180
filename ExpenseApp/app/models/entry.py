# ExpenseApp/app/models/entry.py

import uuid
from datetime import datetime, date
from ExpenseApp.app import db


class EntryRow(db.Model):
    __tablename__ = 'entries'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    date = db.Column(db.Date, default=date.today, nullable=False, index=True)

    # Weak reference: deleting a supplier leaves its entries in place
    supplier_id = db.Column(db.String(36), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    payment_method = db.Column(db.String(20), nullable=False, default='contanti')

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    def to_row(self):
        return {
            'id': self.id,
            'date': self.date.isoformat() if self.date else None,
            'supplier_id': self.supplier_id,
            'amount': str(self.amount) if self.amount is not None else None,
            'description': self.description or '',
            'payment_method': self.payment_method,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
