# ExpenseApp/app/services/users.py
from __future__ import annotations

import hmac
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

import ExpenseApp.app.common as common
from ExpenseApp.app.data_store import RecordNotFound, StoreError
from ExpenseApp.app.services.records import User

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6

# prefixes written by werkzeug's generate_password_hash
HASH_PREFIXES = ("pbkdf2:", "scrypt:")


class UserError(ValueError):
    pass


class DuplicateUser(UserError):
    pass


def admin_username() -> str:
    return common.get_setting("ADMIN_USERNAME", "edoardo")


def is_admin(user: User) -> bool:
    return bool(user.is_admin) or user.username == admin_username()


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def is_hashed(stored: str) -> bool:
    return bool(stored) and stored.startswith(HASH_PREFIXES)


def verify_password(stored: str, candidate: str) -> bool:
    if not stored or candidate is None:
        return False
    if is_hashed(stored):
        return check_password_hash(stored, candidate)
    # rows written before hashing was introduced
    return hmac.compare_digest(stored.encode("utf-8"), candidate.encode("utf-8"))


def _bootstrap_admin(repo, username: str, password: str) -> Optional[User]:
    """First login of the administrator when the users table has no row for them yet."""
    bootstrap = common.get_setting("ADMIN_BOOTSTRAP_PASSWORD")
    if not bootstrap or username != admin_username():
        return None
    if not hmac.compare_digest(str(bootstrap).encode("utf-8"), password.encode("utf-8")):
        return None

    user = repo.add_user(User(id=None, username=username, password=hash_password(password), is_admin=True))
    common.logger.info(f"Administrator account {username} bootstrapped")
    user.password = ""
    return user


def authenticate(repo, username: str, password: str) -> Optional[User]:
    """
    Check a username/password pair against the store.

    Returns the User on success, None on bad credentials. A StoreError
    propagates: logins are never checked against the local mirror.
    """
    username = (username or "").strip()
    if not username or not password:
        return None

    user = repo.find_user(username)
    if user is None:
        user = _bootstrap_admin(repo, username, password)
        if user is None:
            common.logger.info(f"Login refused for unknown user {username}")
        return user

    if not verify_password(user.password, password):
        common.logger.info(f"Login refused for {username}: wrong password")
        return None

    if not is_hashed(user.password):
        try:
            repo.update_user_password(username, hash_password(password))
            common.logger.info(f"Password for {username} upgraded to a hash")
        except StoreError as ex:
            common.logger.warning(f"Could not upgrade password for {username}: {ex}")

    user.password = ""
    return user


def add_user(repo, username: str, password: str) -> User:
    username = (username or "").strip()
    password = password or ""
    if len(username) < MIN_USERNAME_LENGTH:
        raise UserError(f"Il nome utente deve essere di almeno {MIN_USERNAME_LENGTH} caratteri")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise UserError(f"La password deve essere di almeno {MIN_PASSWORD_LENGTH} caratteri")
    if username == admin_username() or repo.find_user(username) is not None:
        raise DuplicateUser("Questo nome utente esiste già")

    # accounts created here are never administrators
    user = repo.add_user(User(id=None, username=username, password=hash_password(password), is_admin=False))
    common.logger.info(f"User {username} added")
    user.password = ""
    return user


def delete_user(repo, user_id: str, current_username: str) -> None:
    users = repo.list_users().items
    target = next((u for u in users if u.id == user_id), None)
    if target is None:
        raise RecordNotFound(f"User {user_id} not found")
    if target.username == current_username:
        raise UserError("Non puoi eliminare il tuo account")
    if is_admin(target):
        raise UserError("Non puoi eliminare l'account amministratore")

    repo.delete_user(user_id)
    common.logger.info(f"User {target.username} deleted by {current_username}")


def change_password(repo, username: str, current_password: str, new_password: str, confirm_password: str) -> None:
    new_password = new_password or ""
    if new_password != (confirm_password or ""):
        raise UserError("Le password non coincidono")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise UserError(f"La password deve essere di almeno {MIN_PASSWORD_LENGTH} caratteri")

    user = repo.find_user(username)
    if user is None:
        raise RecordNotFound(f"User {username} not found")
    if not verify_password(user.password, current_password or ""):
        raise UserError("Password corrente non valida")

    repo.update_user_password(username, hash_password(new_password))
    common.logger.info(f"Password changed for {username}")
