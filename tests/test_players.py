"""
Tests for ShowPlayers parsing and the partial-response tolerance of get_players.
"""

import pytest

from conftest import FakeRcon
from palnotify.players import Player, extract_printable, get_players, parse_players
from palnotify.rcon_client import RconError


class TestParsePlayers:

    def test_header_is_skipped(self):
        """The first line is the CSV header, never a player."""
        players = parse_players("name,playeruid,steamid\nAlice,123456789,76561198000000001\n")
        assert players == [Player("Alice", "123456789", "76561198000000001")]

    def test_empty_response(self):
        assert parse_players("") == []
        assert parse_players("name,playeruid,steamid\n") == []

    def test_blank_lines_skipped(self):
        players = parse_players("name,playeruid,steamid\n\nAlice,1,2\n\nBob,3,4\n")
        assert [p.name for p in players] == ["Alice", "Bob"]

    def test_name_only_line(self):
        """A line with just a name yields empty IDs."""
        players = parse_players("name,playeruid,steamid\nAlice\n")
        assert players == [Player("Alice", "", "")]

    def test_name_and_uid_only(self):
        players = parse_players("name,playeruid,steamid\nAlice,123456789\n")
        assert players == [Player("Alice", "123456789", "")]

    def test_extra_fields_ignored(self):
        players = parse_players("name,playeruid,steamid\nAlice,1,2,junk\n")
        assert players == [Player("Alice", "1", "2")]

    def test_order_and_duplicates_preserved(self):
        players = parse_players("h\nBob,1,2\nAlice,3,4\nBob,1,2\n")
        assert [p.name for p in players] == ["Bob", "Alice", "Bob"]

    def test_control_characters_stripped(self):
        """Carriage returns and other control bytes are dropped from every field."""
        players = parse_players("h\r\nAl\x07ice,1234\x0056789,7656\x1b1\r\n")
        assert players == [Player("Alice", "123456789", "76561")]

    def test_non_latin_names_kept(self):
        players = parse_players("h\nたろう,123456789,0\n")
        assert players[0].name == "たろう"


class TestExtractPrintable:

    def test_keeps_spaces_and_replacement_char(self):
        assert extract_printable("a b�") == "a b�"

    def test_drops_nul_and_newline(self):
        assert extract_printable("a\x00b\nc") == "abc"


class TestGetPlayers:

    def test_issues_show_players(self):
        rcon = FakeRcon(["name,playeruid,steamid\nAlice,1,2\n"])
        players = get_players(rcon)
        assert rcon.commands == ["ShowPlayers"]
        assert players == [Player("Alice", "1", "2")]

    def test_partial_response_tolerated(self):
        """A timed-out ShowPlayers that still delivered text is parsed."""
        err = RconError("i/o timeout", partial="name,playeruid,steamid\nAlice,1,2")
        players = get_players(FakeRcon([err]))
        assert players == [Player("Alice", "1", "2")]

    def test_error_without_output_is_fatal(self):
        with pytest.raises(RconError):
            get_players(FakeRcon([RconError("connection refused")]))

    def test_empty_output_means_no_players(self):
        assert get_players(FakeRcon([""])) == []
