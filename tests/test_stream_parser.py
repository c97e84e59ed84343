import json

from conftest import PROF_LEE_FRAGMENTS
from office_hours.stream_parser import (
    DEFAULT_CLOSERS,
    OfficeHourStreamParser,
    clean_json_fragment,
    close_after_value,
    close_dangling_key,
    close_open_string,
    complete_json_fragment,
    serialize_record,
)


def feed_all(parser, fragments):
    records = []
    for fragment in fragments:
        records.extend(parser.feed(fragment))
    return records


# ============================================================
# SANITIZER
# ============================================================
def test_clean_json_fragment_strips_fences():
    assert clean_json_fragment("```json\n{") == "{"
    assert clean_json_fragment('"link": ""}\n```') == '"link": ""}'


def test_clean_json_fragment_strips_only_first_newline():
    assert clean_json_fragment('\n"a",\n') == '"a",\n'


def test_clean_json_fragment_noop_without_fences():
    assert clean_json_fragment('"host": "Al') == '"host": "Al'


# ============================================================
# CLOSERS
# ============================================================
def test_close_after_value():
    assert close_after_value('{"day": "monday",') == '{"day": "monday",'
    assert close_after_value('{"day": "mon') is None


def test_close_dangling_key_drops_open_quote():
    assert close_dangling_key('{"day": "monday","') == '{"day": "monday",'
    assert close_dangling_key('{"day": "monday",') is None


def test_close_open_string():
    assert close_open_string('{"host": "Prof Le') == '{"host": "Prof Le",'
    assert close_open_string('{"host": "Prof Lee", "da') is None
    assert close_open_string('{"host": ') is None


def test_complete_json_fragment_marks_new_only_for_fresh_buffer():
    fresh = complete_json_fragment('{"day": "monday",', is_new=True)
    continued = complete_json_fragment('{"day": "monday",', is_new=False)

    assert json.loads(fresh) == {"day": "monday", "complete": False, "new": True}
    assert json.loads(continued) == {"day": "monday", "complete": False}


def test_complete_json_fragment_returns_input_when_nothing_applies():
    text = '{"host": "Prof Lee", "da'
    assert complete_json_fragment(text, is_new=True) == text


def test_custom_closers_are_used_in_order():
    def close_everything(text):
        return '{"host": "X",'

    out = complete_json_fragment("garbage", is_new=False, closers=(close_everything,) + DEFAULT_CLOSERS)
    assert json.loads(out) == {"host": "X", "complete": False}


# ============================================================
# PARSER
# ============================================================
def test_prof_lee_end_to_end():
    parser = OfficeHourStreamParser(course_id=42)
    records = feed_all(parser, PROF_LEE_FRAGMENTS)

    final = records[-1]
    assert final["host"] == "Prof Lee"
    assert final["day"] == "Monday"
    assert final["start_time"] == "2:00 PM"
    assert final["end_time"] == "3:00 PM"
    assert final["location"] == "MALA5200"
    assert final["link"] == ""
    assert final["mode"] == "In-person"
    assert final["complete"] is True
    assert final["course_id"] == 42

    assert [r["complete"] for r in records] == [False, False, True]
    assert parser.buffer.text == ""


def test_provisional_records_flag_new_only_on_first_preview():
    parser = OfficeHourStreamParser(course_id=1)
    records = feed_all(parser, PROF_LEE_FRAGMENTS)

    assert records[0]["new"] is True
    assert records[1]["new"] is False
    assert records[2]["new"] is False


def test_incomplete_preview_keeps_raw_values():
    parser = OfficeHourStreamParser(course_id=1)
    [record] = parser.feed('{"host": "prof lee", "day": "fri",')

    assert record["complete"] is False
    assert record["day"] == "Fri"
    assert record["start_time"] == ""
    assert record["mode"] == ""


def test_buffer_rolls_back_after_preview():
    parser = OfficeHourStreamParser(course_id=1)
    parser.feed('{"host": "Prof Lee",')

    assert parser.buffer.text == '{"host": "Prof Lee",'
    assert parser.buffer.is_continuation is True


def test_unclosable_buffer_defers_then_recovers():
    parser = OfficeHourStreamParser(course_id=1)
    assert len(parser.feed('{"host": "Al",')) == 1

    assert parser.feed(' "da') == []
    assert parser.buffer.text == '{"host": "Al", "da'

    [record] = parser.feed('y": "monday",')
    assert record["complete"] is False
    assert record["host"] == "Al"
    assert record["day"] == "Monday"


def test_mid_string_value_previews_latest_text():
    parser = OfficeHourStreamParser(course_id=1)
    [first] = parser.feed('{"host": "Al')
    [second] = parser.feed('ice Smith",')

    assert first["host"] == "Al"
    assert first["complete"] is False
    assert second["host"] == "Alice Smith"
    assert second["complete"] is False


def test_single_object_in_arbitrary_chunks():
    text = json.dumps(
        {
            "host": "ada lovelace",
            "day": "Tuesday",
            "start_time": "10:30 am",
            "end_time": "11:30 am",
            "location": "",
            "link": "https://zoom.us/j/1",
        }
    )
    chunks = [text[i : i + 7] for i in range(0, len(text), 7)]

    parser = OfficeHourStreamParser(course_id=3)
    records = feed_all(parser, chunks)
    completed = [r for r in records if r["complete"]]

    assert len(completed) == 1
    assert completed[0]["host"] == "Ada Lovelace"
    assert completed[0]["start_time"] == "10:30 AM"
    assert completed[0]["mode"] == "Remote"
    assert completed[0]["link"] == "https://zoom.us/j/1"


def test_two_records_back_to_back():
    second = [
        '{"host": "Bo Chen", "day": "tuesday",',
        ' "start_time": "9:00 AM", "end_time": "10:00 AM",',
        ' "location": "", "link": "https://zoom.us/j/2"}',
    ]
    parser = OfficeHourStreamParser(course_id=1)
    records = feed_all(parser, PROF_LEE_FRAGMENTS + second)

    assert [r["complete"] for r in records] == [False, False, True, False, False, True]
    assert records[3]["new"] is True
    assert "location" not in records[3] or records[3]["location"] == ""
    assert records[3]["host"] == "Bo Chen"
    assert records[-1]["mode"] == "Remote"
    assert records[-1]["host"] == "Bo Chen"


def test_two_finished_records_in_one_fragment():
    one = '{"host": "A B", "day": "monday", "start_time": "1:00 PM", "end_time": "2:00 PM", "location": "MC1", "link": ""}'
    two = '{"host": "C D", "day": "friday", "start_time": "3:00 PM", "end_time": "4:00 PM", "location": "DC2", "link": ""}'

    parser = OfficeHourStreamParser(course_id=1)
    records = parser.feed(one + "\n" + two)

    assert [r["host"] for r in records] == ["A B", "C D"]
    assert all(r["complete"] and r["new"] for r in records)
    assert parser.buffer.text == ""


def test_fenced_stream():
    fragments = ["```json\n", PROF_LEE_FRAGMENTS[0], PROF_LEE_FRAGMENTS[1], PROF_LEE_FRAGMENTS[2], "\n```"]
    parser = OfficeHourStreamParser(course_id=1)
    records = feed_all(parser, fragments)

    assert records[-1]["complete"] is True
    assert records[-1]["mode"] == "In-person"


def test_empty_object_is_complete_and_invalid():
    parser = OfficeHourStreamParser(course_id=1)
    [record] = parser.feed("{}")

    assert record["complete"] is True
    assert record["mode"] == "INVALID"
    assert record["host"] == "INVALID"


def test_serialize_record_is_compact():
    assert serialize_record({"a": 1, "b": "x"}) == '{"a":1,"b":"x"}'
    assert serialize_record({"a": 1}, "\n") == '{"a":1}\n'


def test_fence_split_across_fragments():
    record = (
        '{"host": "prof lee", "day": "monday", "start_time": "2:00 PM", '
        '"end_time": "3:00 PM", "location": "MALA5200", "link": ""}'
    )
    parser = OfficeHourStreamParser(course_id=1)
    records = feed_all(parser, ["```", "json", "\n", record, "\n", "```"])

    assert len(records) == 1
    assert records[0]["complete"] is True
    assert records[0]["host"] == "Prof Lee"
    assert parser.buffer.text == ""


def test_text_before_first_brace_is_dropped():
    parser = OfficeHourStreamParser(course_id=1)
    assert parser.feed("json") == []
    assert parser.buffer.text == ""

    [record] = parser.feed('json {"host": "Al",')
    assert record["host"] == "Al"
    assert parser.buffer.text == '{"host": "Al",'


def test_closer_match_that_still_fails_to_parse_leaves_buffer_alone():
    # the value ends in an escaped quote, so close_after_value matches but the
    # sealed text is not JSON
    text = '{"host": "say \\",'
    parser = OfficeHourStreamParser(course_id=1)

    assert parser.feed(text) == []
    assert parser.buffer.text == text
    assert parser.buffer.is_continuation is False
    assert parser.saw_content is False


def test_empty_object_split_in_two_has_no_content():
    parser = OfficeHourStreamParser(course_id=1)
    parser.feed("{")
    parser.feed("}")

    assert parser.saw_content is False


def test_any_schema_field_counts_as_content():
    parser = OfficeHourStreamParser(course_id=1)
    parser.feed('{"host": "Al')

    assert parser.saw_content is True
