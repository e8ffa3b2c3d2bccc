# services/achievements_service.py

import logging
from typing import Dict, List, Optional

from core.connection import ConnectionManager
from core.store import DocumentStore, join_path
from models.achievement import Achievement, AchievementCriteria
from models.enums import AchievementType
from models.user import UserData
from services.base import StoreService, achievements_collection
from utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

ICON_PATH = "assets/images/achievements"

def _achievement(achievement_id: str, title: str, description: str, icon: str,
                 kind: AchievementType, target: int) -> Achievement:
    return Achievement(
        id=achievement_id,
        title=title,
        description=description,
        icon_url=f"{ICON_PATH}/{icon}",
        criteria=AchievementCriteria(type=kind, target_value=target)
    )

PREDEFINED_ACHIEVEMENTS: List[Achievement] = [
    # Часы фокуса
    _achievement('focus_hours_10', 'Getting Started', 'Reach 10 total focus hours',
                 'badge_10h.png', AchievementType.FOCUS_HOURS, 10),
    _achievement('focus_hours_50', 'Dedicated Learner', 'Reach 50 total focus hours',
                 'badge_50h.png', AchievementType.FOCUS_HOURS, 50),
    _achievement('focus_hours_100', 'Century Club', 'Reach 100 total focus hours',
                 'badge_100h.png', AchievementType.FOCUS_HOURS, 100),
    _achievement('focus_hours_500', 'Master of Focus', 'Reach 500 total focus hours',
                 'badge_500h.png', AchievementType.FOCUS_HOURS, 500),

    # Серии дней
    _achievement('streak_7', 'One Week Warrior', 'Maintain a 7-day streak',
                 'badge_7d.png', AchievementType.DAY_STREAK, 7),
    _achievement('streak_30', 'Monthly Dedication', 'Maintain a 30-day streak',
                 'badge_30d.png', AchievementType.DAY_STREAK, 30),
    _achievement('streak_100', 'Unstoppable', 'Maintain a 100-day streak',
                 'badge_100d.png', AchievementType.DAY_STREAK, 100),
    _achievement('streak_365', 'Year of Focus', 'Maintain a 365-day streak',
                 'badge_365d.png', AchievementType.DAY_STREAK, 365),

    # Сессии
    _achievement('sessions_10', 'First Steps', 'Complete 10 focus sessions',
                 'badge_10s.png', AchievementType.SESSIONS_COUNT, 10),
    _achievement('sessions_100', 'Habit Builder', 'Complete 100 focus sessions',
                 'badge_100s.png', AchievementType.SESSIONS_COUNT, 100),
    _achievement('single_session_60', 'Deep Diver', 'Focus for 60 minutes in one session',
                 'badge_60m.png', AchievementType.SINGLE_SESSION, 60),
    _achievement('single_session_120', 'Flow State', 'Focus for 120 minutes in one session',
                 'badge_120m.png', AchievementType.SINGLE_SESSION, 120),
]

CATALOG_ORDER: Dict[str, int] = {item.id: index for index, item in enumerate(PREDEFINED_ACHIEVEMENTS)}

def progress_value(kind: AchievementType, user_data: UserData) -> int:
    """Текущее значение показателя, с которым сравнивается цель"""
    if kind == AchievementType.FOCUS_HOURS:
        return user_data.focus_hours
    if kind == AchievementType.DAY_STREAK:
        return user_data.day_streak
    if kind == AchievementType.SESSIONS_COUNT:
        return user_data.total_sessions
    return user_data.longest_session_minutes

def is_achieved(achievement: Achievement, user_data: UserData) -> bool:
    return progress_value(achievement.criteria.type, user_data) >= achievement.criteria.target_value

class AchievementsService(StoreService):
    """Каталог достижений пользователя и их разблокировка"""

    def __init__(self, store: DocumentStore, connection: Optional[ConnectionManager] = None,
                 catalog: Optional[List[Achievement]] = None):
        super().__init__(store, connection)
        self.catalog = list(catalog) if catalog is not None else list(PREDEFINED_ACHIEVEMENTS)

    def _path(self, user_id: str, achievement_id: str) -> str:
        return join_path(achievements_collection(user_id), achievement_id)

    async def _initialize(self, user_id: str) -> List[Achievement]:
        batch = self.store.batch()
        for achievement in self.catalog:
            batch.set(self._path(user_id, achievement.id), achievement.to_dict())
        await self._run(batch.commit())
        logger.info(f"🏆 Каталог достижений создан для {user_id}: {len(self.catalog)}")
        return list(self.catalog)

    async def get_user_achievements(self, user_id: str) -> List[Achievement]:
        """Достижения пользователя; при первом чтении каталог записывается целиком"""
        try:
            snapshots = await self._run(self.store.collection(achievements_collection(user_id)))
            if not snapshots:
                return await self._initialize(user_id)

            achievements = [Achievement.from_dict(snapshot.to_dict()) for snapshot in snapshots]
            achievements.sort(key=lambda item: CATALOG_ORDER.get(item.id, len(CATALOG_ORDER)))
            return achievements
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки достижений {user_id}: {e}")
            return []

    async def check_and_unlock_achievements(self, user_id: str, user_data: UserData) -> List[Achievement]:
        """Разблокировать все достигнутые цели одной записью

        Уже открытые достижения не проверяются и не перезаписываются.
        Возвращает только новые.
        """
        try:
            achievements = await self.get_user_achievements(user_id)
            now = now_utc()
            unlocked = [
                achievement.unlock(now)
                for achievement in achievements
                if not achievement.is_unlocked and is_achieved(achievement, user_data)
            ]
            if not unlocked:
                return []

            batch = self.store.batch()
            for achievement in unlocked:
                batch.update(self._path(user_id, achievement.id), {
                    'isUnlocked': True,
                    'unlockedAt': achievement.unlocked_at,
                })
            await self._run(batch.commit())

            logger.info(f"🎉 Новые достижения {user_id}: {', '.join(item.id for item in unlocked)}")
            return unlocked
        except Exception as e:
            logger.error(f"❌ Ошибка проверки достижений {user_id}: {e}")
            return []

    async def unlock_achievement(self, user_id: str, achievement_id: str) -> bool:
        try:
            snapshot = await self._run(self.store.get(self._path(user_id, achievement_id)))
            if not snapshot.exists:
                logger.warning(f"⚠️ Достижение не найдено: {achievement_id}")
                return False
            if snapshot.get('isUnlocked'):
                return True

            await self._run(self.store.update(self._path(user_id, achievement_id), {
                'isUnlocked': True,
                'unlockedAt': now_utc(),
            }))
            logger.info(f"🏆 Достижение {achievement_id} открыто для {user_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Ошибка разблокировки {achievement_id}: {e}")
            return False

    async def get_unlocked_count(self, user_id: str) -> int:
        achievements = await self.get_user_achievements(user_id)
        return sum(1 for achievement in achievements if achievement.is_unlocked)
