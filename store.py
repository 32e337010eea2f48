from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Optional

from errors import RecordNotFoundError
from logging_config import get_logger
from models import PhotoEntry, User, UserRole, UserStatus
from utils import avatar_url, first_name, from_ms, generate_uuid, now_ms

logger = get_logger(__name__)

DAY_MS = 86_400_000
HOUR_MS = 3_600_000


class RecordStore:
    """In-memory users and photo entries for the lifetime of the process"""

    def __init__(self):
        self._users: list[User] = []
        self._photos: list[PhotoEntry] = []

    # Photos

    def append(self, record: PhotoEntry):
        self._photos.append(record)
        logger.info(f"Stored photo {record.id} from user {record.user_id}")

    def remove(self, photo_id: str):
        photo = self.get_photo(photo_id)
        self._photos.remove(photo)
        logger.info(f"Removed photo {photo_id}")

    def list(self) -> list[PhotoEntry]:
        return list(self._photos)

    def get_photo(self, photo_id: str) -> PhotoEntry:
        for photo in self._photos:
            if photo.id == photo_id:
                return photo
        raise RecordNotFoundError(f"Photo {photo_id} not found")

    # Users

    def list_users(self) -> list[User]:
        return list(self._users)

    def get_user(self, user_id: str) -> User:
        for user in self._users:
            if user.id == user_id:
                return user
        raise RecordNotFoundError(f"User {user_id} not found")

    def find_user(self, user_id: str) -> Optional[User]:
        try:
            return self.get_user(user_id)
        except RecordNotFoundError:
            return None

    def add_user(self, name: str, email: str, role: UserRole = UserRole.COLLECTOR,
                 status: UserStatus = UserStatus.PENDING) -> User:
        user = User(
            id=generate_uuid(),
            name=name,
            email=email,
            role=UserRole(role),
            avatar=avatar_url(name),
            created_at=now_ms(),
            status=status,
        )
        self._users.append(user)
        logger.info(f"Added user {user.email} as {user.role.value} ({user.status.value})")
        return user

    def add_admin(self, name: str, email: str) -> User:
        return self.add_user(name, email, UserRole.ADMIN, UserStatus.ACTIVE)

    def remove_user(self, user_id: str):
        # Photo entries keep the dangling user_id
        user = self.get_user(user_id)
        self._users.remove(user)
        logger.info(f"Removed user {user.email}")

    def update_status(self, user_id: str, status: UserStatus):
        user = self.get_user(user_id)
        user.status = UserStatus(status)
        logger.info(f"User {user.email} is now {user.status.value}")

    def record_access(self, user_id: str, timestamp: Optional[int] = None):
        user = self.find_user(user_id)
        if user is None:
            return
        user.access_logs.insert(0, timestamp if timestamp is not None else now_ms())

    def pending_user_count(self) -> int:
        return len([u for u in self._users if u.status == UserStatus.PENDING])

    def current_user(self) -> User:
        """First registered user, or a system administrator when there is none"""
        if self._users:
            return self._users[0]
        return User(
            id="admin-fallback",
            name="System Admin",
            email="admin@system",
            role=UserRole.ADMIN,
            avatar="",
            created_at=now_ms(),
            status=UserStatus.ACTIVE,
        )

    def clear(self):
        """Delete every photo and every user except the first one"""
        self._photos.clear()
        del self._users[1:]
        logger.warning("All photos and users (except the main admin) were cleared")

    # Dashboard

    def dashboard_stats(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now()
        photos_by_user = {}
        for photo in self._photos:
            photos_by_user[photo.user_id] = photos_by_user.get(photo.user_id, 0) + 1

        per_user = [
            {"name": first_name(user.name), "photos": photos_by_user.get(user.id, 0)}
            for user in self._users
        ]
        ranking = sorted(
            ({"user": user, "photo_count": photos_by_user.get(user.id, 0)} for user in self._users),
            key=lambda item: item["photo_count"],
            reverse=True,
        )[:10]

        return {
            "total_photos": len(self._photos),
            "active_users": len([u for u in self._users if u.status == UserStatus.ACTIVE]),
            "today_photos": len([p for p in self._photos if from_ms(p.timestamp).date() == now.date()]),
            "photos_by_user": [d for d in per_user if d["photos"] > 0],
            "ranking": ranking,
        }

    # Demo data

    def seed_demo_data(self):
        now = now_ms()
        ana = User(
            id="1", name="Ana Souza", email="ana@fotoflow.ai", role=UserRole.ADMIN,
            avatar=avatar_url("ana"), created_at=now - 10_000_000, status=UserStatus.ACTIVE,
            access_logs=[now - 120_000, now - DAY_MS, now - 2 * DAY_MS],
        )
        carlos = User(
            id="2", name="Carlos Lima", email="carlos@fotoflow.ai", role=UserRole.COLLECTOR,
            avatar=avatar_url("carlos"), created_at=now - 5_000_000, status=UserStatus.ACTIVE,
            access_logs=[now - HOUR_MS, now - 4_000_000],
        )
        beatriz = User(
            id="3", name="Beatriz Silva", email="bia@fotoflow.ai", role=UserRole.VIEWER,
            avatar=avatar_url("bia"), created_at=now - HOUR_MS, status=UserStatus.PENDING,
        )
        self._users.extend([ana, carlos, beatriz])

        self._photos.extend([
            PhotoEntry(
                id="101",
                url="https://images.unsplash.com/photo-1533473359331-0135ef1b58bf?auto=format&fit=crop&w=800&q=80",
                timestamp=now - DAY_MS, user_id="2",
                description="Vehicle in good condition, light scratch on the bumper.",
                tags=("sedan", "silver", "inspection"),
                vehicle_model="Toyota Corolla", license_plate="ABC-1234",
            ),
            PhotoEntry(
                id="102",
                url="https://images.unsplash.com/photo-1549317661-bd32c8ce0db2?auto=format&fit=crop&w=800&q=80",
                timestamp=now - 2 * DAY_MS, user_id="2",
                description="Front left tire with irregular wear.",
                tags=("maintenance", "tires", "alignment"),
                vehicle_model="Honda Civic", license_plate="XYZ-9876",
            ),
            PhotoEntry(
                id="103",
                url="https://images.unsplash.com/photo-1617788138017-80ad40651399?auto=format&fit=crop&w=800&q=80",
                timestamp=now - HOUR_MS, user_id="1",
                description="Clean SUV, ready for delivery.",
                tags=("suv", "cleaning", "delivery"),
                vehicle_model="Jeep Compass", license_plate="JEP-5544",
            ),
        ])
        logger.info(f"Seeded {len(self._users)} users and {len(self._photos)} photos")


def copy_record(record: PhotoEntry) -> PhotoEntry:
    return dataclasses.replace(record, tags=tuple(record.tags))
