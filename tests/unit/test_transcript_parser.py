# pylint: disable=missing-module-docstring,missing-function-docstring
from transcript.models import LyricLine, Transcript
from transcript.parser import format_lrc, parse_lrc, parse_lrc_line


def test_parses_timestamped_lines_in_input_order() -> None:
    source = "[00:12.34]Hello\n[01:02.50]World"

    transcript = parse_lrc(source)

    assert transcript.lines == (
        LyricLine(time_s=12.34, text="Hello"),
        LyricLine(time_s=62.5, text="World"),
    )
    assert transcript.available is True


def test_three_digit_fraction_is_read_as_hundredths() -> None:
    line = parse_lrc_line("[00:01.500]x")

    assert line is not None
    assert line.time_s == 6.0


def test_metadata_blank_and_malformed_lines_are_dropped() -> None:
    source = "\n".join([
        "[ar:Some Artist]",
        "",
        "no timestamp here",
        "[0:12.34]single digit minutes",
        "[00:12]missing fraction",
        "[00:05.00]kept",
    ])

    transcript = parse_lrc(source)

    assert [line.text for line in transcript.lines] == ["kept"]


def test_empty_text_marks_instrumental_gap() -> None:
    line = parse_lrc_line("[00:30.00]   ")

    assert line == LyricLine(time_s=30.0, text="")


def test_unordered_input_is_not_resorted() -> None:
    transcript = parse_lrc("[00:20.00]b\n[00:10.00]a")

    assert [line.time_s for line in transcript.lines] == [20.0, 10.0]


def test_no_timestamped_lines_yields_empty_transcript() -> None:
    transcript = parse_lrc("just prose\n[ti:title]")

    assert len(transcript) == 0


def test_format_then_parse_preserves_transcript() -> None:
    original = Transcript(lines=(
        LyricLine(time_s=0.0, text="start"),
        LyricLine(time_s=75.25, text="middle"),
        LyricLine(time_s=601.1, text=""),
    ))

    assert parse_lrc(format_lrc(original)) == original


def test_minutes_past_ninety_nine_survive_format_and_parse() -> None:
    original = Transcript(lines=(LyricLine(time_s=6005.5, text="late"),))

    formatted = format_lrc(original)

    assert formatted == "[100:05.50]late"
    assert parse_lrc(formatted) == original
