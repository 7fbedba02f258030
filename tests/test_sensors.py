"""Tests for sensor resolution."""

from pyvitals.sensors import (
    SensorResolver,
    build_fan_sensor,
    build_thermal_sensor,
    normalize_celsius,
)

THERMAL = ("class/thermal/thermal_zone*/temp", "class/hwmon/hwmon*/temp*_input")
FAN = ("class/hwmon/hwmon*/fan*_input",)
PWM = ("class/hwmon/hwmon*/pwm*",)


def test_normalize_celsius():
    """Test millidegree readings become whole degrees."""
    assert normalize_celsius(45500) == 46.0
    assert normalize_celsius(38.2) == 38.0


def test_empty_candidates_unavailable_and_rate_limited(clock, tmp_path):
    """Test an empty candidate list is unavailable and not re-probed every tick."""
    resolver = SensorResolver([], root=str(tmp_path), retry_interval=60.0, clock=clock)

    for _ in range(50):
        assert resolver.read() is None
        clock.advance(1.0)

    assert resolver.available is False
    assert resolver.probe_count == 1

    clock.advance(10.0)  # 60s since the first probe
    resolver.read()
    assert resolver.probe_count == 2


def test_picks_first_parseable_candidate(clock, fake_sys):
    fake_sys.write("class/thermal/thermal_zone0/temp", "garbage\n")
    fake_sys.write("class/thermal/thermal_zone1/temp", "52000\n")
    fake_sys.write("class/hwmon/hwmon0/temp1_input", "40000\n")

    sensor = build_thermal_sensor(THERMAL, root=str(fake_sys.root), clock=clock)
    reading = sensor.read()

    assert reading.available
    assert reading.celsius == 52.0
    assert reading.source.endswith("thermal_zone1/temp")


def test_natural_order_of_matches(clock, fake_sys):
    fake_sys.write("class/thermal/thermal_zone10/temp", "70000\n")
    fake_sys.write("class/thermal/thermal_zone2/temp", "30000\n")

    sensor = build_thermal_sensor(THERMAL, root=str(fake_sys.root), clock=clock)

    assert sensor.read().celsius == 30.0


def test_falls_back_to_later_pattern(clock, fake_sys):
    fake_sys.write("class/hwmon/hwmon3/temp2_input", "61000\n")

    sensor = build_thermal_sensor(THERMAL, root=str(fake_sys.root), clock=clock)

    assert sensor.read().celsius == 61.0


def test_disappearing_sensor_flips_unavailable(clock, fake_sys):
    """Test a sensor removed after resolution reports unavailable instead of failing."""
    path = fake_sys.write("class/thermal/thermal_zone0/temp", "45000\n")
    sensor = build_thermal_sensor(THERMAL, root=str(fake_sys.root), retry_interval=60.0, clock=clock)
    assert sensor.read().available

    path.unlink()
    reading = sensor.read()
    assert reading.available is False
    assert sensor.resolver.path is None

    # Comes back, but is only picked up at the fallback cadence
    fake_sys.write("class/thermal/thermal_zone0/temp", "47000\n")
    clock.advance(30.0)
    assert sensor.read().available is False
    clock.advance(30.0)
    assert sensor.read().celsius == 47.0


def test_fan_reading(clock, fake_sys):
    fake_sys.write("class/hwmon/hwmon1/fan1_input", "1800\n")
    fake_sys.write("class/hwmon/hwmon1/pwm1_enable", "2\n")
    fake_sys.write("class/hwmon/hwmon1/pwm1", "128\n")

    fan = build_fan_sensor(FAN, PWM, root=str(fake_sys.root), clock=clock).read()

    assert fan.available
    assert fan.rpm == 1800
    assert fan.pwm == 128
    assert fan.active


def test_stopped_fan_is_inactive(clock, fake_sys):
    fake_sys.write("class/hwmon/hwmon1/fan1_input", "0\n")

    fan = build_fan_sensor(FAN, PWM, root=str(fake_sys.root), clock=clock).read()

    assert fan.available
    assert fan.active is False
    assert fan.pwm == 0


def test_pwm_only_fan(clock, fake_sys):
    fake_sys.write("class/hwmon/hwmon0/pwm2", "90\n")

    fan = build_fan_sensor(FAN, PWM, root=str(fake_sys.root), clock=clock).read()

    assert fan.available
    assert fan.rpm == 0
    assert fan.active


def test_no_fan(clock, tmp_path):
    fan = build_fan_sensor(FAN, PWM, root=str(tmp_path), clock=clock).read()

    assert fan.available is False
