from . import db  # import the db object from __init__.py

# Import models so create_all() and Alembic see them
from ExpenseApp.app.models.supplier import SupplierRow
from ExpenseApp.app.models.entry import EntryRow
from ExpenseApp.app.models.user import UserRow
