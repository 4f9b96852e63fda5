# Overview: Pytest coverage for the Flask CLI command groups.

from pantry.models import InviteCode, Product, User


def test_invites_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["invites", "create", "--organization-name", "Tacos del Norte"])
    assert result.exit_code == 0
    assert "PASS Created invite code: tacos-del-norte" in result.output
    assert db_session.get(InviteCode, "tacos-del-norte").org_id is None

    again = runner.invoke(args=["invites", "create", "--organization-name", "Tacos del Norte"])
    assert again.exit_code == 1
    assert "already exists" in again.output

    listing = runner.invoke(args=["invites", "list", "--unused"])
    assert "tacos-del-norte" in listing.output
    assert "new org" in listing.output


def test_invites_create_rejects_bad_code(app, db_session):
    result = app.test_cli_runner().invoke(
        args=["invites", "create", "--organization-name", "X", "--code", "a b"]
    )
    assert result.exit_code == 1
    assert "FAIL invalid invite code" in result.output


def test_create_admin(app, db_session, org_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create-admin", "--org-id", str(org_a.id),
        "--name", "Ana", "--email", "ana@tacos.mx", "--password", "Password123!",
    ])
    assert result.exit_code == 0
    assert db_session.query(User).filter_by(email="ana@tacos.mx").one().role == "admin"

    weak = runner.invoke(args=[
        "users", "create-admin", "--org-id", str(org_a.id),
        "--name", "Otra", "--email", "otra@tacos.mx", "--password", "corta",
    ])
    assert weak.exit_code == 1
    assert "FAIL Password must be at least 8 characters long" in weak.output

    missing = runner.invoke(args=[
        "users", "create-admin", "--org-id", "999",
        "--name", "X", "--email", "x@tacos.mx", "--password", "Password123!",
    ])
    assert missing.exit_code == 1


def test_orgs_and_users_list(app, db_session, admin_a, restaurant_a):
    runner = app.test_cli_runner()

    orgs = runner.invoke(args=["orgs", "list"])
    assert "Tacos del Norte" in orgs.output
    assert "users=2" in orgs.output

    users = runner.invoke(args=["users", "list"])
    assert "centro@tacos.mx" in users.output
    assert "(Sucursal Centro)" in users.output


def test_stock_verify(app, db_session, pollo, tortillas):
    runner = app.test_cli_runner()

    ok = runner.invoke(args=["stock", "verify"])
    assert ok.exit_code == 0
    assert "PASS" in ok.output

    # Simulate a cache written outside the ledger
    db_session.get(Product, pollo.id).stock_level = 99
    db_session.commit()

    broken = runner.invoke(args=["stock", "verify", "--org-id", str(pollo.org_id)])
    assert broken.exit_code == 1
    assert "Pollo entero" in broken.output
    assert "cached=99" in broken.output
    assert "ledger=20.0" in broken.output
