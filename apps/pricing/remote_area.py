ULLEUNG_KEYWORDS = ("울릉도", "울릉군")

REMOTE_AREA_KEYWORDS = (
    "제주",
    "제주도",
    "제주시",
    "서귀포",
    "서귀포시",
    "독도",
    "강화",
    "강화도",
    "강화군",
    "백령",
    "백령도",
    "연평",
    "연평도",
    "흑산",
    "흑산도",
    "진도",
    "진도군",
    "가파리",
    "가파도",
    "영도",
    "영도구",
)


def is_remote_area(address):
    """Advisory check for Jeju, island and other remote delivery addresses.

    A plain substring scan, not a postal-code lookup: callers show a warning
    and let the seller settle any surcharge by hand.
    """
    if not address:
        return False
    if any(keyword in address for keyword in ULLEUNG_KEYWORDS):
        return True
    return any(keyword in address for keyword in REMOTE_AREA_KEYWORDS)
