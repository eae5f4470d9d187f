import pytest

from ddcsync import feature_catalog
from ddcsync.coalescer import WriteCoalescer
from ddcsync.ddcutil import DdcutilGateway
from ddcsync.displays import Display


def getvcp(code, bus):
    return ("ddcutil", "getvcp", code, "--bus", bus, "--terse")


def setvcp(code, bus, value):
    return ("ddcutil", "setvcp", "--bus", bus, "--noverify", code, str(value))


@pytest.fixture
def make_slider(runner, timers):
    from ddcsync.slider import DdcSlider

    def _make(feature=feature_catalog.BRIGHTNESS, contrast=False):
        coalescer = WriteCoalescer(timers.timeout_add, timers.source_remove, delay_ticks=10)
        return DdcSlider(feature, DdcutilGateway(runner), coalescer, contrast_enabled=lambda: contrast)

    return _make


DISPLAYS = [Display("6", "Left"), Display("7", "Right")]


def test_reads_value_from_first_display(runner, make_slider):
    runner.respond(getvcp("10", "6"), "VCP 10 C 40 100\n")
    slider = make_slider()
    seen = []
    slider.add_listener(lambda s: seen.append(s.value))

    slider.set_displays(DISPLAYS)

    assert slider.visible
    assert slider.value == pytest.approx(0.4)
    assert slider.subtitle == "40%"
    assert seen == [pytest.approx(0.4)]
    assert runner.calls_to("ddcutil", "getvcp") == [getvcp("10", "6")]


def test_falls_back_to_legacy_brightness_code(runner, make_slider):
    runner.respond(getvcp("6B", "6"), "VCP 6B C 25 50\n")
    slider = make_slider()
    slider.set_displays(DISPLAYS)
    assert slider.current_code == "6B"
    assert slider.value == pytest.approx(0.5)


def test_empty_display_list_hides_slider(runner, make_slider):
    slider = make_slider()
    slider.set_displays([])
    assert not slider.visible
    assert slider.subtitle == ""
    assert runner.calls == []


def test_user_change_writes_every_display_once(runner, timers, make_slider):
    runner.respond(getvcp("10", "6"), "VCP 10 C 40 100\n")
    runner.respond(setvcp("10", "6", 70), "")
    runner.respond(setvcp("10", "7", 70), "")
    slider = make_slider()
    slider.set_displays(DISPLAYS)

    slider.set_value(0.5)
    slider.set_value(0.6)
    slider.set_value(0.7)
    assert runner.calls_to("ddcutil", "setvcp") == []

    timers.advance(10)
    assert sorted(runner.calls_to("ddcutil", "setvcp")) == [setvcp("10", "6", 70), setvcp("10", "7", 70)]
    assert slider.subtitle == "70%"


def test_write_scales_by_read_maximum(runner, timers, make_slider):
    runner.respond(getvcp("62", "6"), "VCP 62 CNC x00 xff x00 x80\n")
    slider = make_slider(feature_catalog.VOLUME)
    slider.set_displays(DISPLAYS[:1])

    slider.set_value(1.0)
    timers.advance(10)
    assert runner.calls_to("ddcutil", "setvcp") == [setvcp("62", "6", 255)]


def test_write_dropped_for_display_no_longer_listed(runner, timers, make_slider):
    runner.respond(getvcp("10", "6"), "VCP 10 C 40 100\n")
    runner.respond(setvcp("10", "6", 90), "")
    slider = make_slider()
    slider.set_displays(DISPLAYS)
    slider.set_value(0.9)

    slider.set_displays(DISPLAYS[:1])
    timers.advance(10)
    assert runner.calls_to("ddcutil", "setvcp") == [setvcp("10", "6", 90)]


def test_adjust_clamps(runner, make_slider):
    runner.respond(getvcp("10", "6"), "VCP 10 C 98 100\n")
    slider = make_slider()
    slider.set_displays(DISPLAYS)
    assert slider.adjust(0.05, True) == 1.0
    assert slider.adjust(0.05, False) == pytest.approx(0.95)


def test_contrast_blending_averages_and_writes_both(runner, timers, make_slider):
    runner.respond(getvcp("12", "6"), ["VCP 12 C 60 100\n", "VCP 12 C 60 100\n"])
    runner.respond(getvcp("10", "6"), "VCP 10 C 40 100\n")
    runner.respond(setvcp("10", "6", 30), "")
    slider = make_slider(contrast=True)

    slider.set_displays(DISPLAYS[:1])
    assert slider.blending
    assert slider.value == pytest.approx(0.5)

    slider.set_value(0.3)
    timers.advance(10)
    assert runner.calls_to("ddcutil", "setvcp") == [setvcp("10", "6", 30), setvcp("12", "6", 30)]


def test_contrast_write_uses_contrast_maximum(runner, timers, make_slider):
    runner.respond(getvcp("12", "6"), ["VCP 12 C 30 50\n", "VCP 12 C 30 50\n"])
    runner.respond(getvcp("10", "6"), "VCP 10 C 40 100\n")
    runner.respond(setvcp("10", "6", 30), "")
    slider = make_slider(contrast=True)

    slider.set_displays(DISPLAYS[:1])
    assert slider.value == pytest.approx(0.5)

    slider.set_value(0.3)
    timers.advance(10)
    assert runner.calls_to("ddcutil", "setvcp") == [setvcp("10", "6", 30), setvcp("12", "6", 15)]


def test_contrast_not_written_when_brightness_write_fails(runner, timers, make_slider):
    runner.respond(getvcp("12", "6"), ["VCP 12 C 60 100\n", "VCP 12 C 60 100\n"])
    runner.respond(getvcp("10", "6"), "VCP 10 C 40 100\n")
    slider = make_slider(contrast=True)
    slider.set_displays(DISPLAYS[:1])

    slider.set_value(0.3)
    timers.advance(10)
    assert runner.calls_to("ddcutil", "setvcp") == [setvcp("10", "6", 30), setvcp("6B", "6", 30)]


def test_contrast_unsupported_reads_plain_brightness(runner, make_slider):
    runner.respond(getvcp("12", "6"), "VCP 12 ERR\n")
    runner.respond(getvcp("10", "6"), "VCP 10 C 80 100\n")
    slider = make_slider(contrast=True)
    slider.set_displays(DISPLAYS[:1])
    assert not slider.blending
    assert slider.value == pytest.approx(0.8)


def test_stale_read_is_ignored(runner, make_slider):
    runner.deferred = True
    runner.respond(getvcp("10", "6"), "VCP 10 C 10 100\n")
    runner.respond(getvcp("10", "7"), "VCP 10 C 90 100\n")
    slider = make_slider()

    slider.set_displays(DISPLAYS)
    slider.set_displays(DISPLAYS[1:])
    runner.complete_all()

    assert slider.value == pytest.approx(0.9)


def test_destroy_drops_pending_writes(runner, timers, make_slider):
    runner.respond(getvcp("10", "6"), "VCP 10 C 40 100\n")
    slider = make_slider()
    slider.set_displays(DISPLAYS)
    slider.set_value(0.2)
    slider.destroy()
    timers.advance(100)
    assert runner.calls_to("ddcutil", "setvcp") == []
    assert not slider.visible
