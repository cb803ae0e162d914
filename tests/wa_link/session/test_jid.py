"""Tests for chat name to JID resolution."""

import pytest

from wa_link.session.jid import normalize_jid, resolve_chat

OWN = "10000000000@s.whatsapp.net"


class TestNormalizeJid:
    """Device suffix stripping."""

    def test_strips_device(self):
        """The ``:device`` part before ``@`` is removed."""
        assert normalize_jid("10000000000:12@s.whatsapp.net") == OWN

    def test_already_normal(self):
        """A JID without a device suffix is unchanged."""
        assert normalize_jid(OWN) == OWN


class TestResolveChat:
    """resolve_chat() rules."""

    def test_me(self):
        """``me`` is the own JID."""
        assert resolve_chat("me", OWN) == OWN

    def test_me_unknown(self):
        """``me`` before the own JID is known is an error."""
        with pytest.raises(ValueError, match="Own JID is unknown"):
            resolve_chat("me", None)

    @pytest.mark.parametrize("jid", ["120363000000000000@g.us", "15550001111@s.whatsapp.net"])
    def test_jid_passthrough(self, jid):
        """Anything with '@' is taken as a JID."""
        assert resolve_chat(jid, OWN) == jid

    @pytest.mark.parametrize("number", ["15550001111", "+1 (555) 000-1111"])
    def test_phone_number(self, number):
        """Non-digits are dropped and the user server appended."""
        assert resolve_chat(number, OWN) == "15550001111@s.whatsapp.net"

    def test_no_digits(self):
        """A name with no digits cannot be resolved."""
        with pytest.raises(ValueError, match="Invalid chat"):
            resolve_chat("alice", OWN)
