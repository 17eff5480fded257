from flask import Blueprint, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user

from studio import bcrypt
from studio.forms import LoginForm
from studio.models import User

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

@auth_bp.route('/login', methods=['POST'])
def login():
    form = LoginForm()
    if not form.validate():
        return jsonify({'success': False, 'message': form.errors}), 400

    user = User.query.filter_by(username=form.username.data).first()
    if not user or not bcrypt.check_password_hash(user.password, form.password.data):
        current_app.logger.warning(f"Failed login for {form.username.data}")
        return jsonify({'success': False, 'message': 'Invalid username or password'}), 401

    login_user(user)
    return jsonify({
        'success': True,
        'message': f'Logged in as {user.username}',
        'permissions': user.permissions
    }), 200

@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    username = current_user.username
    logout_user()
    return jsonify({
        'success': True,
        'message': f'Logged out {username}'
    }), 200
