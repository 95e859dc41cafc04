import logging
import os
from datetime import datetime

from flask import Flask, abort, flash, redirect, render_template, request, send_file, url_for

import portal
import views
from database import db
from portal import PortalError
from store import StaleStateError, Store

app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('TROOPPORTAL_DATABASE_URI', 'sqlite:///troopportal.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SECRET_KEY'] = os.environ.get('TROOPPORTAL_SECRET_KEY', 'dev-secret-key-change-me')
app.config['PUBLIC_ROOT'] = os.environ.get('TROOPPORTAL_PUBLIC_ROOT', os.path.join(app.root_path, 'public'))

db.init_app(app)
store = Store()

# navigation token -> (template, projection)
VIEWS = {
    'dashboard': ('dashboard.html', views.dashboard_view),
    'events': ('events.html', views.events_view),
    'smc-bor': ('smc_bor.html', views.smc_bor_view),
    'adults': ('adults.html', views.adults_view),
    'resources': ('resources.html', views.resources_view),
    'admin': ('admin.html', views.admin_view),
}
DEFAULT_VIEW = 'dashboard'

PUBLIC_MIME = {
    '.html': 'text/html',
    '.js': 'application/javascript',
    '.css': 'text/css',
    '.json': 'application/json',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.svg': 'image/svg+xml',
}


# --- Helpers ---

def load_state():
    state = store.load()
    if not state.users:
        # first run, or a database that never went through init-db
        db.create_all()
        try:
            store.ensure_seed(state)
        except StaleStateError:
            state = store.load()
    return state


def persist(state):
    """Save state, or tell the user their change was not applied."""
    try:
        store.save(state)
    except StaleStateError as e:
        app.logger.info('Save refused: %s', e)
        flash(str(e), 'warning')
        return False
    return True


def view_token(token):
    return token if token in VIEWS else DEFAULT_VIEW


def back():
    return redirect(url_for('show_view', token=view_token(request.form.get('next'))))


def event_or_404(state, event_id):
    event = portal.find_event(state, event_id)
    if event is None:
        abort(404)
    return event


def render_page(template, state, active, **context):
    return render_template(template, sidebar=views.sidebar_view(state), active=active,
                           nav=list(VIEWS), year=datetime.now().year, **context)


def resolve_public_file(root, request_path):
    """Map a request path to (file path, content type) under root."""
    request_path = (request_path or '').lstrip('/') or 'index.html'
    if '..' in request_path:
        abort(403)
    path = os.path.join(root, request_path)
    if not os.path.isfile(path):
        abort(404)
    content_type = PUBLIC_MIME.get(os.path.splitext(path)[1], 'application/octet-stream')
    return path, content_type


# --- Routes ---

@app.route('/')
@app.route('/<token>')
def show_view(token=DEFAULT_VIEW):
    token = view_token(token)
    template, project = VIEWS[token]
    state = load_state()
    return render_page(template, state, token, **project(state))


@app.route('/history/<key>')
def history(key):
    if key not in views.HISTORY_KEYS:
        abort(404)
    state = load_state()
    return render_page('history.html', state, DEFAULT_VIEW, **views.history_view(state, key))


@app.route('/public/')
@app.route('/public/<path:filename>')
def serve_public(filename=''):
    path, content_type = resolve_public_file(app.config['PUBLIC_ROOT'], filename)
    return send_file(path, mimetype=content_type)


@app.route('/current-user', methods=['POST'])
def switch_user():
    state = load_state()
    try:
        portal.set_current_user(state, request.form.get('user_id'))
    except PortalError as e:
        flash(str(e), 'danger')
        return back()
    persist(state)
    return back()


@app.route('/events/<event_id>/register', methods=['POST'])
def register(event_id):
    state = load_state()
    event = event_or_404(state, event_id)
    user = portal.current_user(state)
    try:
        portal.register(state, event, user.id)
    except PortalError as e:
        app.logger.info('Registration for %s blocked: %s', event.id, e)
        flash(str(e), 'danger')
        return back()
    if persist(state):
        flash('Registered successfully', 'success')
    return back()


@app.route('/events/<event_id>/unregister', methods=['POST'])
def unregister(event_id):
    state = load_state()
    event = event_or_404(state, event_id)
    user = portal.current_user(state)
    try:
        portal.unregister(state, event, user.id)
    except PortalError as e:
        app.logger.info('Unregistration for %s blocked: %s', event.id, e)
        flash(str(e), 'danger')
        return back()
    persist(state)
    return back()


@app.route('/events/new', methods=['POST'])
def create_event():
    state = load_state()
    user = portal.current_user(state)
    try:
        event, conflicts = portal.submit_event(
            state, user.id,
            name=request.form.get('name', ''),
            from_date=request.form.get('from_date', ''),
            to_date=request.form.get('to_date', ''),
            close_date=request.form.get('close_date', ''),
            location=request.form.get('location', ''),
            scout_in_charge=request.form.get('scout_in_charge', ''),
            logistics=request.form.get('logistics', ''),
            signup_limit=request.form.get('signup_limit', ''),
        )
    except PortalError as e:
        flash(str(e), 'danger')
        return redirect(url_for('show_view', token='events'))
    if persist(state):
        if conflicts:
            flash('Warning: Conflicts with ' + ', '.join(c.name for c in conflicts), 'warning')
        flash('Event submitted for approval.', 'success')
    return redirect(url_for('show_view', token='events'))


@app.route('/events/<event_id>/approval', methods=['POST'])
def set_approval(event_id):
    state = load_state()
    event = event_or_404(state, event_id)
    approved = request.form.get('approved') == '1'
    try:
        portal.set_approval(state, event, approved, user=portal.current_user(state))
    except PortalError as e:
        flash(str(e), 'danger')
        return back()
    persist(state)
    return back()


@app.route('/smc-bor/new', methods=['POST'])
def submit_smc_bor():
    state = load_state()
    user = portal.current_user(state)
    try:
        portal.submit_smc_bor(state, user.id, request.form.get('type'), request.form.get('date', ''))
    except PortalError as e:
        flash(str(e), 'danger')
        return redirect(url_for('show_view', token='smc-bor'))
    persist(state)
    return redirect(url_for('show_view', token='smc-bor'))


@app.route('/adult-signups/new', methods=['POST'])
def add_adult_signup():
    state = load_state()
    user = portal.current_user(state)
    portal.add_adult_signup(state, user.id, request.form.get('role', ''), request.form.get('date', ''))
    persist(state)
    return back()


@app.route('/admin/medical', methods=['POST'])
def save_medical():
    state = load_state()
    try:
        portal.set_medical_valid_until(state, request.form.get('user_id'),
                                       request.form.get('valid_until', ''))
    except PortalError:
        abort(404)
    if persist(state):
        flash('Saved', 'success')
    return redirect(url_for('show_view', token='admin'))


@app.route('/admin/training', methods=['POST'])
def save_training():
    state = load_state()
    try:
        portal.upsert_training(state, request.form.get('user_id'),
                               request.form.get('course', ''), request.form.get('status', ''))
    except PortalError:
        abort(404)
    if persist(state):
        flash('Saved', 'success')
    return redirect(url_for('show_view', token='admin'))


# --- DB initialization & seeding ---

def init_db():
    db.create_all()
    state = store.load()
    return store.ensure_seed(state)


@app.cli.command('init-db')
def init_db_command():
    """Create the storage table and seed the default troop."""
    if init_db():
        print('Database created and seeded.')
    else:
        print('Database already seeded.')


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    with app.app_context():
        init_db()
    app.run(debug=True)
