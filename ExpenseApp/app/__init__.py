import os

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

app = Flask(__name__)

app.config.update(
    SECRET_KEY=None,
    STORE_BACKEND="sql",  # "sql" or "supabase"
    SQLALCHEMY_DATABASE_URI="sqlite:///expenses.db",
    SQLALCHEMY_TRACK_MODIFICATIONS=False,
    SUPABASE_URL=None,
    SUPABASE_KEY=None,
    STORE_TIMEOUT=10,
    MIRROR_CACHE_TYPE="FileSystemCache",
    MIRROR_CACHE_DIR=os.path.join(app.instance_path, "mirror"),
    ADMIN_USERNAME="edoardo",
    ADMIN_BOOTSTRAP_PASSWORD=None,
    FIRST_YEAR=2024,
    LOG_LEVEL="DEBUG",
    LOG_FILE=None,
    LOG_MAIL_HOST=None,
    LOG_MAIL_FROM=None,
    LOG_MAIL_TO=None,
)
app.config.from_prefixed_env()  # get config data from environment variables beginning with "FLASK_"

db = SQLAlchemy(app)

# Flask-Migrate setup
migrate = Migrate(app, db)

from ExpenseApp.app import common

common.logger.debug(f"Store backend: {app.config['STORE_BACKEND']}")

# Import models so Alembic sees them
from ExpenseApp.app import expense_db
from ExpenseApp.app import auth
from ExpenseApp.app import views

from ExpenseApp.app.routes.entries_api import bp as entries_api_bp
from ExpenseApp.app.routes.suppliers_api import bp as suppliers_api_bp
from ExpenseApp.app.routes.users_api import bp as users_api_bp
from ExpenseApp.app.routes.reports_api import bp as reports_api_bp
from ExpenseApp.app.ui.session_ui import bp as session_ui_bp

app.register_blueprint(entries_api_bp, url_prefix="/api")
app.register_blueprint(suppliers_api_bp, url_prefix="/api")
app.register_blueprint(users_api_bp, url_prefix="/api")
app.register_blueprint(reports_api_bp, url_prefix="/api/reports")
app.register_blueprint(session_ui_bp)

if __name__ == "__main__":
    app.run(debug=True)
