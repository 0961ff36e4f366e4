from sequence_engine.core.models import Section
from sequence_engine.outreach.availability import (
    AvailabilityInput,
    DaySlot,
    fill_slots,
    inject_availability,
    render_availability_block,
)

BODY = "Hello {{first_name}},\n\nText.\n\nBest,\nTim"


def test_render_window_and_ranges():
    availability = AvailabilityInput(window="the week of March 3", time_ranges="Tue 9-11am\nWed 1-3pm")

    assert render_availability_block(availability) == (
        "I am available the week of March 3:\n\n• Tue 9-11am\n• Wed 1-3pm"
    )


def test_render_window_only_and_ranges_only():
    assert render_availability_block(AvailabilityInput(window="next week")) == "I am available next week."
    assert render_availability_block(AvailabilityInput(time_ranges=["Mon 9am"])) == "I am available:\n\n• Mon 9am"


def test_render_prefers_block_and_day_slots():
    assert render_availability_block(AvailabilityInput(block="  Free all Friday.  ")) == "Free all Friday."

    slots = AvailabilityInput(window="in March", day_slots=[DaySlot(date="Mar 3", time="9-11am")])
    assert render_availability_block(slots) == "I am available in March:\n\n• Mar 3 — 9-11am"


def test_time_ranges_split_from_text():
    availability = AvailabilityInput(time_ranges="a\n\n b ")

    assert availability.time_ranges == ["a", "b"]


def test_placeholder_substitution():
    sections = {"email1": Section(body="Text.\n\n{{availability}}\n\nBest,\nTim")}

    result = inject_availability(sections, AvailabilityInput(window="next week"))

    assert result["email1"].body == "Text.\n\nI am available next week.\n\nBest,\nTim"


def test_all_placeholder_forms_replaced():
    body = "A {{availability}} B [availability] C {availability}"
    result = inject_availability({"email2": Section(body=body)}, "X")

    assert result["email2"].body == "A X B X C X"


def test_slot_substitution_reuses_last_range():
    body = "Options:\n[Date] — [Time]\n[Date] — [Time]\n[Date] - [Time]"
    sections = {"email1": Section(body=body)}

    result = inject_availability(sections, AvailabilityInput(time_ranges=["Mon 9am", "Tue 2pm"]))

    assert result["email1"].body == "Options:\nMon 9am\nTue 2pm\nTue 2pm"


def test_fill_slots_without_ranges_is_noop():
    assert fill_slots("[Date] — [Time]", []) == "[Date] — [Time]"


def test_append_goes_before_signoff():
    result = inject_availability({"email1": Section(body=BODY)}, "I am available next week.")

    assert result["email1"].body == (
        "Hello {{first_name}},\n\nText.\n\nI am available next week.\n\nBest,\nTim"
    )


def test_append_without_signoff_goes_before_last_line():
    result = inject_availability({"email3": Section(body="Line one.\nLine two.")}, "Block.")

    assert result["email3"].body == "Line one.\n\nBlock.\n\nLine two."


def test_append_is_idempotent():
    availability = AvailabilityInput(window="next week", time_ranges=["Mon 9am"])
    sections = {"email1": Section(body=BODY)}

    once = inject_availability(sections, availability)
    twice = inject_availability(once, availability)

    assert once == twice
    assert once["email1"].body.count("I am available") == 1


def test_filled_slots_are_not_appended_again():
    availability = AvailabilityInput(time_ranges=["Mon 9am", "Tue 2pm"])
    sections = {"email1": Section(body="Options:\n[Date] — [Time]\n[Date] — [Time]\n\nBest,\nTim")}

    once = inject_availability(sections, availability)
    twice = inject_availability(once, availability)

    assert once == twice


def test_email4_and_linkedin_never_appended():
    sections = {
        "email4": Section(body="Bye for now.\n\nBest,\nTim"),
        "linkedinMessage": Section(body="Hi {{first_name}},\n\nQuick note."),
    }

    assert inject_availability(sections, "I am available next week.") == sections


def test_no_availability_leaves_sections_unchanged():
    sections = {"email1": Section(body="Text.\n\n{{availability}}")}

    assert inject_availability(sections, None) == sections
    assert inject_availability(sections, AvailabilityInput()) == sections
    assert inject_availability(sections, "   ") == sections


def test_input_sections_not_mutated():
    original = Section(body=BODY)
    sections = {"email1": original}

    inject_availability(sections, "Block.")

    assert sections["email1"] is original
