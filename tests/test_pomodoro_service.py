import pytest

from e_estudiantes.services import pomodoro_service as pomodoro


def test_work_alternates_with_short_breaks_until_long_break():
    phase, cycles = pomodoro.PHASE_WORK, 0
    seen = []
    for _ in range(8):
        phase, cycles = pomodoro.next_phase(phase, cycles, 4)
        seen.append(phase)

    assert seen == [
        pomodoro.PHASE_SHORT_BREAK,
        pomodoro.PHASE_WORK,
        pomodoro.PHASE_SHORT_BREAK,
        pomodoro.PHASE_WORK,
        pomodoro.PHASE_SHORT_BREAK,
        pomodoro.PHASE_WORK,
        pomodoro.PHASE_LONG_BREAK,
        pomodoro.PHASE_WORK,
    ]
    assert cycles == 4


def test_break_returns_to_work_without_counting_a_cycle():
    assert pomodoro.next_phase(pomodoro.PHASE_LONG_BREAK, 4, 4) == (pomodoro.PHASE_WORK, 4)


def test_phase_durations_use_settings():
    settings = pomodoro.normalize_settings({"duration": 50, "break_duration": 10})

    assert pomodoro.phase_duration_seconds(settings, pomodoro.PHASE_WORK) == 3000
    assert pomodoro.phase_duration_seconds(settings, pomodoro.PHASE_SHORT_BREAK) == 600
    assert pomodoro.phase_duration_seconds(settings, pomodoro.PHASE_LONG_BREAK) == 900


def test_normalize_settings_defaults_and_validation():
    assert pomodoro.normalize_settings(None) == pomodoro.DEFAULT_SETTINGS

    with pytest.raises(ValueError):
        pomodoro.normalize_settings({"duration": 0})
    with pytest.raises(ValueError):
        pomodoro.normalize_settings({"cycles_for_long_break": "many"})
    with pytest.raises(ValueError):
        pomodoro.normalize_settings({"break_duration": True})


def test_build_and_publish_pomodoro_doc():
    doc = pomodoro.build_pomodoro_doc("u1", pomodoro.normalize_settings({}), 1000.0)

    assert doc["status"] == pomodoro.STATUS_ACTIVE
    assert doc["phase"] == pomodoro.PHASE_WORK
    assert doc["completed_cycles"] == 0
    payload = pomodoro.public_pomodoro("p1", doc)
    assert payload["id"] == "p1"
    assert payload["phase_duration_seconds"] == 25 * 60
