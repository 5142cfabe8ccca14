"""Example control script.

Drives forward while keeping centred between the side walls, and turns in
place towards the more open side when a wall comes up ahead. Turns are
measured with the wheel encoders.

The simulator calls ``control(mouse)`` once per tick with a read-only
snapshot and expects ``(left_power, right_power)`` back (or ``None`` to
keep the current powers).
"""

import math

CRUISE_POWER = 0.5
TURN_POWER = 0.3
FRONT_STOP = 45.0
SIDE_WALL = 120.0
CENTRE_GAIN = 0.004

_turn = {"active": False, "start": 0, "ticks": 0, "sign": 1}


def _ticks_for(mouse, angle):
    # In-place turn: each wheel travels angle * wheel_base / 2.
    travel = abs(angle) * mouse.wheel_base / 2.0
    return int(round(travel / (2.0 * math.pi * mouse.wheel_radius) * mouse.encoder_resolution))


def control(mouse):
    s = mouse.sensors

    if _turn["active"]:
        if abs(mouse.right_encoder - _turn["start"]) >= _turn["ticks"]:
            _turn["active"] = False
            return (0.0, 0.0)
        sign = _turn["sign"]
        return (-sign * TURN_POWER, sign * TURN_POWER)

    if s["front"] < FRONT_STOP:
        if s["left"] > SIDE_WALL:
            sign, angle = 1, math.pi / 2
        elif s["right"] > SIDE_WALL:
            sign, angle = -1, math.pi / 2
        else:
            sign, angle = 1, math.pi
        _turn.update(active=True, start=mouse.right_encoder, ticks=_ticks_for(mouse, angle), sign=sign)
        return (0.0, 0.0)

    correction = 0.0
    if s["left"] < SIDE_WALL and s["right"] < SIDE_WALL:
        correction = CENTRE_GAIN * (s["left"] - s["right"])
    return (CRUISE_POWER - correction, CRUISE_POWER + correction)
