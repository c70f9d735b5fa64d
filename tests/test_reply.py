"""Unit tests for reply line parsing and codemap resolution."""

import pytest

from ftppipe.errors import RemoteError
from ftppipe.reply import Category, Reply, ReplyLine, ReplyParser, raise_remote, resolve


class TestReplyParser:
    """Tests for ReplyParser."""

    def test_final_line(self):
        """Test that "NNN text" is a final line."""
        parser = ReplyParser()
        assert parser.feed(b"220 Service ready\r\n") == [ReplyLine(220, True, "Service ready")]

    def test_continuation_line(self):
        """Test that "NNN-text" is a continuation line."""
        parser = ReplyParser()
        assert parser.feed(b"211-Status of /:\r\n") == [ReplyLine(211, False, "Status of /:")]

    def test_bare_code_is_final_with_empty_text(self):
        """Test that a code with no message still ends a reply."""
        parser = ReplyParser()
        assert parser.feed(b"200\r\n") == [ReplyLine(200, True, "")]

    def test_free_text_has_no_code(self):
        """Test that lines without a leading code come back uncoded."""
        parser = ReplyParser()
        [line] = parser.feed(b" -rw-r--r-- 1 user user 100 Feb 2 2005 file\r\n")
        assert line.code is None
        assert line.is_final is False
        assert line.text == " -rw-r--r-- 1 user user 100 Feb 2 2005 file"

    def test_out_of_range_code_is_free_text(self):
        """Test that a 6xx-9xx "code" is not taken as a reply."""
        parser = ReplyParser()
        [line] = parser.feed(b"999 nonsense\r\n")
        assert line.code is None

    def test_partial_line_waits_for_terminator(self):
        """Test that nothing is emitted until CRLF arrives."""
        parser = ReplyParser()
        assert parser.feed(b"226 Trans") == []
        assert parser.feed(b"fer complete\r") == []
        assert parser.feed(b"\n") == [ReplyLine(226, True, "Transfer complete")]

    def test_bare_lf_is_not_a_terminator(self):
        """Test that only CRLF ends a line."""
        parser = ReplyParser()
        assert parser.feed(b"200 OK\n") == []

    def test_several_lines_in_one_chunk(self):
        """Test that one read may carry a whole multi-line reply."""
        parser = ReplyParser()
        lines = parser.feed(b"150 Opening\r\n226 Done\r\n331 Pass")
        assert [line.code for line in lines] == [150, 226]
        assert bytes(parser.buffer) == b"331 Pass"

    def test_reset_discards_partial_line(self):
        """Test that a dangling partial line is dropped without error."""
        parser = ReplyParser()
        parser.feed(b"421 Going aw")
        parser.reset()
        assert parser.feed(b"200 OK\r\n") == [ReplyLine(200, True, "OK")]

    def test_undecodable_bytes_are_replaced(self):
        """Test that bad bytes don't kill the parser."""
        parser = ReplyParser()
        [line] = parser.feed(b"200 caf\xff\r\n")
        assert line.code == 200
        assert line.text.startswith("caf")

    def test_str_round_trips_wire_form(self):
        """Test that a line prints as it appeared on the wire."""
        assert str(ReplyLine(211, False, "Status")) == "211-Status"
        assert str(ReplyLine(211, True, "End")) == "211 End"
        assert str(ReplyLine(None, False, " text")) == " text"


class TestCategory:
    """Tests for reply categories."""

    @pytest.mark.parametrize(
        "code, category",
        [
            (150, Category.INFO),
            (226, Category.OK),
            (350, Category.MORE),
            (425, Category.ERR),
            (550, Category.ERR),
        ],
    )
    def test_first_digit_decides(self, code, category):
        """Test the first-digit mapping."""
        assert Category.of(code) is category
        assert Reply(code, "").category is category


class TestResolve:
    """Tests for codemap lookup."""

    def test_exact_code_wins_over_category(self):
        """Test that an exact key beats its category."""
        exact, general = object(), object()
        codemap = {226: exact, Category.OK: general}
        assert resolve(codemap, 226) is exact
        assert resolve(codemap, 250) is general

    def test_no_match(self):
        """Test that an uncovered code resolves to None."""
        assert resolve({Category.OK: print}, 550) is None


class TestRaiseRemote:
    """Tests for the shared error handler."""

    def test_carries_code_message_and_lines(self):
        """Test that the reply is surfaced verbatim."""
        with pytest.raises(RemoteError) as info:
            raise_remote(Reply(550, "No such file", ["detail"]))
        assert info.value.code == 550
        assert info.value.message == "No such file"
        assert info.value.lines == ["detail"]
        assert str(info.value) == "550 (No such file)"

    def test_empty_message_falls_back_to_standard_text(self):
        """Test that a bare code gets the standard description."""
        with pytest.raises(RemoteError) as info:
            raise_remote(Reply(530, ""))
        assert info.value.message == "Not logged in"
