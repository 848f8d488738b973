"""
saferoute/services/formatting.py

表示用の距離・所要時間フォーマット

RouteData の distanceText / durationText と確認スクリプトの出力で使う。
"""
import math


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_distance(meters: float) -> str:
    """
    距離を表示用文字列に変換

    1km以上は小数1桁のkm、未満はメートル。

    例:
        850 -> "850 m"
        1234 -> "1.2 km"
    """
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{_round_half_up(meters)} m"


def format_duration(seconds: float) -> str:
    """
    所要時間を表示用文字列に変換

    60分未満は分、以上は時間と分。

    例:
        720 -> "12 min"
        3900 -> "1h 5m"
    """
    minutes = _round_half_up(seconds / 60)
    if minutes < 60:
        return f"{minutes} min"
    hours, remainder = divmod(minutes, 60)
    return f"{hours}h {remainder}m"
