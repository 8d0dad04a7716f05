"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

os.environ.setdefault("FLASK_ENV", "testing")
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only")

# project root on sys.path for the flat layout
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from app import create_app
from config import TestConfig
from extensions import db
from ledger.account_service import AccountService
from ledger.catalog import ProductCatalog


T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def hours(n):
    return T0 + timedelta(hours=n)


@pytest.fixture
def app():
    """Fresh app + in-memory database (bootstrapped) per test."""
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Register a user and optionally give them a starting balance."""
    counter = {"n": 0}

    def _make_user(username=None, balance=None, referral_code=None, password="secret123"):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = AccountService.register(
            username=username,
            email=f"{username.lower()}@example.com",
            password=password,
            referral_code=referral_code,
        )
        if balance is not None:
            user.balance = Decimal(str(balance))
            db.session.commit()
        return user

    return _make_user


@pytest.fixture
def product(app):
    """600 for 50 a day over 30 days."""
    return ProductCatalog.add_product({
        "name": "ROYAL-600",
        "description": "Test unit",
        "price": 600,
        "dailyIncome": 50,
        "days": 30,
    })


@pytest.fixture
def admin(app):
    return AccountService.login(TestConfig.ADMIN_EMAIL, TestConfig.ADMIN_PASSWORD)


def login(client, email, password="secret123"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


@pytest.fixture
def user_client(client, make_user):
    """Logged-in client for a user with 1000 balance. Returns (client, user)."""
    user = make_user("alice", balance=1000)
    response = login(client, user.email)
    assert response.status_code == 200
    return client, user


@pytest.fixture
def admin_client(app, client):
    response = login(client, TestConfig.ADMIN_EMAIL, TestConfig.ADMIN_PASSWORD)
    assert response.status_code == 200
    return client
