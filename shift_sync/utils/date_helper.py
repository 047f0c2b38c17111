# utils/date_helper.py
from datetime import date, datetime

GREGORIAN = "gregorian"
JALALI = "jalali"

_G_DAYS_BEFORE_MONTH = [0, 31, 59, 90, 120, 151, 181, 212, 243, 273, 304, 334]


def gregorian_to_jalali(gy: int, gm: int, gd: int) -> tuple[int, int, int]:
    """
    Gregorian -> Jalali (Persian solar hijri) date.
    - 2024-03-20 -> (1403, 1, 1)
    - 33-year cycle arithmetic, valid for the modern era
    """
    gy2 = gy + 1 if gm > 2 else gy
    days = (355666 + 365 * gy + (gy2 + 3) // 4 - (gy2 + 99) // 100
            + (gy2 + 399) // 400 + gd + _G_DAYS_BEFORE_MONTH[gm - 1])
    jy = -1595 + 33 * (days // 12053)
    days %= 12053
    jy += 4 * (days // 1461)
    days %= 1461
    if days > 365:
        jy += (days - 1) // 365
        days = (days - 1) % 365
    if days < 186:
        jm = 1 + days // 31
        jd = 1 + days % 31
    else:
        jm = 7 + (days - 186) // 30
        jd = 1 + (days - 186) % 30
    return jy, jm, jd


def date_key(d: date, calendar: str = GREGORIAN) -> str:
    """Business-calendar key YYYY-MM-DD for a Gregorian date."""
    if calendar == JALALI:
        y, m, dd = gregorian_to_jalali(d.year, d.month, d.day)
        return f"{y:04d}-{m:02d}-{dd:02d}"
    return d.strftime("%Y-%m-%d")


def today_key(calendar: str = GREGORIAN) -> str:
    return date_key(date.today(), calendar)


def backup_stamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
