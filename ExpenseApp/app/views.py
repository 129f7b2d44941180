from flask import jsonify
from flask_login import login_required

from . import app
from . import common
from .session_context import SessionContext, available_years


@app.route("/")
@login_required
def homepage():
    ctx = SessionContext.current()
    common.logger.debug('root of domain reached by ' + (ctx.username if ctx else 'unknown'))
    return jsonify({
        "username": ctx.username if ctx else None,
        "isAdmin": ctx.is_admin if ctx else False,
        "year": ctx.selected_year if ctx else None,
        "years": available_years(),
    })
