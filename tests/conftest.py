# tests/conftest.py

import pytest

@pytest.fixture
def app_with_db(tmp_path):
    """
    Creates a new app instance backed by an in-memory database, with CSRF
    disabled so forms can be posted directly, and yields it within an
    application context.
    """
    from app import create_app, db

    app = create_app(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
        WTF_CSRF_ENABLED=False,
        UPLOAD_FOLDER=str(tmp_path / "uploads"),
        SECRET_KEY="test-secret",
    )

    with app.app_context():
        db.create_all()
        yield app  # The tests will run here
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app_with_db):
    return app_with_db.test_client()

@pytest.fixture
def admin_client(client):
    """A test client already logged in as the seeded admin."""
    from app.seed import seed_data

    seed_data()
    response = client.post('/login', data={'username': 'admin', 'pin': '1234'})
    assert response.status_code == 302
    return client

@pytest.fixture
def roster(app_with_db):
    """One driver in company housing, one without, and a vehicle."""
    from app import db
    from app.models import Driver, Vehicle

    ravi = Driver(name='Ravi Kumar', mobile='9000000001', room_rent=True)
    suresh = Driver(name='Suresh', mobile='9000000002', room_rent=False)
    vehicle = Vehicle(number='KA01AB1234', type='Sedan')
    db.session.add_all([ravi, suresh, vehicle])
    db.session.commit()
    return {'ravi': ravi, 'suresh': suresh, 'vehicle': vehicle}
