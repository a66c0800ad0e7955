"""
Tests for the session file and session models.
"""

import json
import os
import stat
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from seap.auth import CorruptSessionError, Identity, Role, Session, SessionStorage


class TestSessionStorage:
    """Reading and writing the session file."""

    def test_save_then_load(self, tmp_path):
        """Test a saved session loads back unchanged."""
        storage = SessionStorage(tmp_path / "session")
        session = Session("t1", Identity("65a1", "a@b.com", Role.ADMIN))

        storage.save(session)

        assert storage.load() == session

    def test_file_layout(self, tmp_path):
        """Test the on-disk token and user entries."""
        path = tmp_path / "session"
        SessionStorage(path).save(Session("t1", Identity(1, "a@b.com", Role.USER)))

        data = json.loads(path.read_text())
        assert data["token"] == "t1"
        assert json.loads(data["user"]) == {"id": 1, "email": "a@b.com", "role": "user"}

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_file_is_private(self, tmp_path):
        """Test the session file is owner-only."""
        path = tmp_path / "session"
        SessionStorage(path).save(Session("t1", Identity(1, "a@b.com", Role.USER)))

        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_no_temporary_file_left_behind(self, tmp_path):
        """Test the atomic write leaves no temp file."""
        path = tmp_path / "session"
        SessionStorage(path).save(Session("t1", Identity(1, "a@b.com", Role.USER)))

        assert sorted(p.name for p in tmp_path.iterdir()) == ["session"]

    def test_creates_parent_directory(self, tmp_path):
        """Test missing parent directories are created."""
        path = tmp_path / "nested" / "dir" / "session"
        SessionStorage(path).save(Session("t1", Identity(1, "a@b.com", Role.USER)))

        assert path.exists()

    def test_load_missing_file(self, tmp_path):
        """Test loading without a file."""
        assert SessionStorage(tmp_path / "session").load() is None

    def test_load_empty_object(self, tmp_path):
        """Test an emptied file loads as no session."""
        path = tmp_path / "session"
        path.write_text("{}")

        assert SessionStorage(path).load() is None

    def test_load_half_pair_is_corrupt(self, tmp_path):
        """Test a half pair is corrupt."""
        path = tmp_path / "session"
        path.write_text(json.dumps({"token": "t1", "user": ""}))

        with pytest.raises(CorruptSessionError):
            SessionStorage(path).load()

    def test_clear_missing_file_is_quiet(self, tmp_path):
        """Test clearing a missing file does nothing."""
        storage = SessionStorage(tmp_path / "session")
        storage.clear()
        storage.clear()

        assert not storage.exists()


class TestIdentity:
    """Parsing the backend's user record."""

    def test_numeric_and_string_ids(self):
        """Test both id forms parse."""
        assert Identity.from_dict({"id": 5, "email": "a@b.com", "role": "user"}).id == 5
        assert Identity.from_dict({"id": "65a1f0", "email": "a@b.com", "role": "admin"}).is_admin

    @pytest.mark.parametrize(
        "record",
        [
            None,
            [],
            {"email": "a@b.com", "role": "user"},
            {"id": True, "email": "a@b.com", "role": "user"},
            {"id": 1, "email": "", "role": "user"},
            {"id": 1, "email": "a@b.com"},
            {"id": 1, "email": "a@b.com", "role": "superuser"},
        ],
    )
    def test_invalid_records(self, record):
        """Test malformed user records raise ValueError."""
        with pytest.raises(ValueError):
            Identity.from_dict(record)


class TestExpiry:
    """Reading the exp claim out of the credential."""

    def test_jwt_expiry(self):
        """Test exp is read from a JWT."""
        exp = datetime(2030, 1, 1, tzinfo=timezone.utc)
        token = jwt.encode({"user_id": 1, "exp": exp}, "secret", algorithm="HS256")

        session = Session(token, Identity(1, "a@b.com", Role.USER))

        assert session.expires_at() == exp

    def test_expired_jwt_still_reports_expiry(self):
        """Test an expired JWT still reports its expiry."""
        exp = datetime.now(timezone.utc).replace(microsecond=0) - timedelta(days=1)
        token = jwt.encode({"exp": exp}, "secret", algorithm="HS256")

        assert Session(token, Identity(1, "a@b.com", Role.USER)).expires_at() == exp

    def test_opaque_credential(self):
        """Test a non-JWT credential has no expiry."""
        assert Session("t1", Identity(1, "a@b.com", Role.USER)).expires_at() is None

    def test_jwt_without_exp(self):
        """Test a JWT without exp has no expiry."""
        token = jwt.encode({"user_id": 1}, "secret", algorithm="HS256")
        assert Session(token, Identity(1, "a@b.com", Role.USER)).expires_at() is None
