"""Tests for imessage_archiver.core.cancellation."""

import pytest

from imessage_archiver.core.cancellation import CancellationToken
from imessage_archiver.core.exceptions import RunInterrupted


class TestCancellationToken:

    def test_first_reason_wins(self):
        token = CancellationToken()
        assert not token.cancelled
        token.raise_if_cancelled()

        token.cancel("received SIGTERM")
        token.cancel("received SIGINT")

        assert token.cancelled
        assert token.reason == "received SIGTERM"
        with pytest.raises(RunInterrupted, match="SIGTERM"):
            token.raise_if_cancelled()

    def test_shield_nests(self):
        token = CancellationToken()

        with token.shield():
            with token.shield():
                assert token.shielded
            assert token.shielded
        assert not token.shielded

    def test_shield_released_on_error(self):
        token = CancellationToken()

        with pytest.raises(OSError):
            with token.shield():
                raise OSError("busy")

        assert not token.shielded
