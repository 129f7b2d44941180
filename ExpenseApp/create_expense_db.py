# run this from within 'flask shell' when STORE_BACKEND=sql
'''
(venv) $ export FLASK_APP=ExpenseApp.app
(venv) $ export FLASK_SQLALCHEMY_DATABASE_URI=sqlite:////var/www/ExpenseApp/instance/expenses.db
(venv) $ flask shell
>>> import ExpenseApp.create_expense_db
'''
from ExpenseApp.app import db, expense_db, app

with app.app_context():
    db.create_all()
