from datetime import datetime

from utils import avatar_url, check_master_password, first_name, format_date, format_time


def test_format_timestamp():
    ts = int(datetime(2026, 3, 10, 14, 5, 9).timestamp() * 1000)
    assert format_date(ts) == "03/10/2026"
    assert format_time(ts) == "14:05:09"


def test_avatar_url_quotes_name():
    assert avatar_url("Ana Souza") == "https://picsum.photos/seed/Ana%20Souza/200"


def test_first_name():
    assert first_name("Carlos Lima") == "Carlos"
    assert first_name("") == ""


def test_master_password():
    assert check_master_password("secret", "secret")
    assert not check_master_password("guess", "secret")
    # An unset master password never unlocks
    assert not check_master_password("", "")
