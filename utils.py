import uuid
from datetime import datetime
from urllib.parse import quote

# Helper functions
def generate_uuid():
    return str(uuid.uuid4())

def now_ms() -> int:
    return int(datetime.now().timestamp() * 1000)

def from_ms(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp / 1000)

def format_date(timestamp: int) -> str:
    return from_ms(timestamp).strftime('%m/%d/%Y')

def format_time(timestamp: int) -> str:
    return from_ms(timestamp).strftime('%H:%M:%S')

def avatar_url(name: str) -> str:
    return f"https://picsum.photos/seed/{quote(name, safe='')}/200"

def first_name(name: str) -> str:
    return name.split(' ')[0] if name else ""

def check_master_password(candidate: str, master_password: str) -> bool:
    # Plain comparison; this gates admin UI actions only and is not authentication.
    return bool(master_password) and candidate == master_password
