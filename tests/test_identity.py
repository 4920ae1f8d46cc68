import pytest

from band_sync.domain import IdentityMissingError
from band_sync.services import MemberIdentity, StaticIdentity, require_actor

ROSTER = ("COKAI", "YUSUKE", "ZEN", "YAMCHI")


class TestRequireActor:
    def test_trims(self):
        assert require_actor("  ZEN ") == "ZEN"

    @pytest.mark.parametrize("actor", [None, "", "   "])
    def test_missing(self, actor):
        with pytest.raises(IdentityMissingError):
            require_actor(actor)


class TestMemberIdentity:
    def test_select_persists(self, tmp_path):
        path = tmp_path / "identity.json"
        identity = MemberIdentity.from_roster(ROSTER, path=path)
        assert identity.display_name() is None

        identity.select(" YUSUKE ")

        assert MemberIdentity.from_roster(ROSTER, path=path).display_name() == "YUSUKE"

    def test_rejects_non_member(self):
        identity = MemberIdentity.from_roster(ROSTER)
        with pytest.raises(ValueError):
            identity.select("RINGO")
        assert identity.display_name() is None

    def test_rejects_overlong_nickname(self):
        with pytest.raises(ValueError):
            MemberIdentity.from_roster(ROSTER).select("X" * 21)

    def test_clear(self, tmp_path):
        path = tmp_path / "identity.json"
        identity = MemberIdentity.from_roster(ROSTER, path=path)
        identity.select("ZEN")
        identity.clear()
        assert MemberIdentity.from_roster(ROSTER, path=path).display_name() is None

    def test_unreadable_file_ignored(self, tmp_path):
        path = tmp_path / "identity.json"
        path.write_text("{broken")
        assert MemberIdentity.from_roster(ROSTER, path=path).display_name() is None

    @pytest.mark.parametrize("content", ["[]", "\"ZEN\"", "42"])
    def test_non_object_file_ignored(self, tmp_path, content):
        path = tmp_path / "identity.json"
        path.write_text(content)
        assert MemberIdentity.from_roster(ROSTER, path=path).display_name() is None


def test_static_identity():
    assert StaticIdentity("COKAI").display_name() == "COKAI"
