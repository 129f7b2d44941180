from functools import wraps

import flask
import flask_login

import ExpenseApp.app.common as common
from ExpenseApp.app import app
from ExpenseApp.app.data_store import StoreError
from ExpenseApp.app.services import users as user_service
from ExpenseApp.app.services.repository import get_repository
from ExpenseApp.app.session_context import SessionContext, available_years

login_manager = flask_login.LoginManager()
login_manager.init_app(app)


class SessionUser(flask_login.UserMixin):
    pass


def _session_user(username):
    user = SessionUser()
    user.id = username
    return user


@login_manager.user_loader
def load_user(username):
    ctx = SessionContext.current()
    if ctx is None or ctx.username != username:
        return
    return _session_user(username)


def _wants_json():
    return flask.request.is_json or flask.request.path.startswith('/api/')


@app.route('/login', methods=['GET', 'POST'])
def login():
    if flask.request.method == 'GET':
        options = ''.join(f"<option value='{y}'>{y}</option>" for y in available_years())
        return f'''
               <form action='login' method='POST'>
                <input type='text' name='username' id='username' placeholder='username'/>
                <input type='password' name='password' id='password' placeholder='password'/>
                <select name='year' id='year'>{options}</select>
                <input type='submit' name='submit'/>
               </form>
               '''

    data = flask.request.get_json(silent=True) if flask.request.is_json else flask.request.form
    data = data or {}
    username = data.get('username') or ''
    password = data.get('password') or ''
    try:
        year = int(data.get('year')) if data.get('year') else None
    except (TypeError, ValueError):
        year = None

    try:
        user = user_service.authenticate(get_repository(), username, password)
    except StoreError as ex:
        common.logger.warning('Login for ' + username + ' failed, store unavailable: ' + str(ex))
        if flask.request.is_json:
            return flask.jsonify({'error': 'Servizio non disponibile, riprova'}), 502
        return 'Servizio non disponibile, riprova', 502

    if user is None:
        if flask.request.is_json:
            return flask.jsonify({'error': 'Credenziali non valide'}), 401
        return 'Credenziali non valide', 401

    ctx = SessionContext.begin(user.username, user_service.is_admin(user), year)
    flask_login.login_user(_session_user(user.username))

    if flask.request.is_json:
        return flask.jsonify({'username': ctx.username, 'isAdmin': ctx.is_admin, 'year': ctx.selected_year})
    return flask.redirect(flask.url_for('homepage'))


@app.route('/logout', methods=['GET', 'POST'])
def logout():
    SessionContext.end()
    flask_login.logout_user()
    return 'Logged out'


@login_manager.unauthorized_handler
def unauthorized_handler():
    if _wants_json():
        return flask.jsonify({'error': 'Login required'}), 401
    return flask.redirect(flask.url_for('login'))


def admin_required(view):
    """Use below @login_required: only the administrator may continue."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        ctx = SessionContext.current()
        if ctx is None or not ctx.is_admin:
            common.logger.info('Admin-only ' + flask.request.path + ' refused for '
                               + (ctx.username if ctx else 'anonymous'))
            return flask.jsonify({'error': 'Forbidden'}), 403
        return view(*args, **kwargs)
    return wrapper
