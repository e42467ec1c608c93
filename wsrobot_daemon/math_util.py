# wsrobot_daemon/math_util.py
# Range conversion helpers


def map_value(value, in_min, in_max, out_min, out_max):
    """
    Linearly map value from [in_min, in_max] onto [out_min, out_max].

    No clamping: values outside the input range extrapolate.

    Example:
        map_value(0, -1, 1, 0, 255)  # 127.5 (PWM neutral)
    """
    return out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)
