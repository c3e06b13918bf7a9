from app import db
from app.models import User

DEFAULT_ADMIN = {
    # username, display name, PIN
    'username': 'admin',
    'name': 'Administrator',
    'pin': '1234',
}

def seed_data():
    """Creates the default admin account if no admin exists yet."""
    if User.query.filter_by(role='admin').count() == 0:
        admin = User(username=DEFAULT_ADMIN['username'], name=DEFAULT_ADMIN['name'], role='admin')
        admin.set_pin(DEFAULT_ADMIN['pin'])
        db.session.add(admin)
        print(f"Seeding admin user: {DEFAULT_ADMIN['username']}")

    db.session.commit()
    print('Seeding complete.')
