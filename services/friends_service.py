# services/friends_service.py

import logging
from datetime import timedelta
from typing import AsyncIterator, Dict, List, Optional, Set

from core.cache import CacheManager
from core.connection import ConnectionManager
from core.store import DocumentStore, Query
from models.enums import FriendRequestStatus
from models.social import Friend, FriendRequestResult
from models.user import UserData
from services.base import (
    DEFAULT_BATCH_FETCH_SIZE, USERS, StoreService, chunked, friend_path, friends_collection,
)
from utils.datetime_utils import now_utc
from utils.validators import clean_search_query, clean_user_id

logger = logging.getLogger(__name__)

# ===== КОНСТАНТЫ =====

MAX_FRIEND_REQUESTS_PER_HOUR = 10
RATE_LIMIT_WINDOW = timedelta(hours=1)
SEARCH_RESULTS_LIMIT = 10

# Верхняя граница для префиксного поиска по строкам
PREFIX_SEARCH_END = "\uf8ff"

DEFAULT_FANOUT_BATCH_SIZE = 50

class FriendsService(StoreService):
    """
    Управление друзьями и заявками в друзья

    Каждая связь хранится дважды: users/A/friends/B и users/B/friends/A.
    Обе записи создаются, меняются и удаляются одной атомарной групповой
    записью, поэтому односторонних связей не бывает.
    """

    def __init__(self, store: DocumentStore, connection: Optional[ConnectionManager] = None,
                 requests_per_hour: int = MAX_FRIEND_REQUESTS_PER_HOUR,
                 search_limit: int = SEARCH_RESULTS_LIMIT,
                 batch_size: int = DEFAULT_BATCH_FETCH_SIZE,
                 user_cache: Optional[CacheManager[UserData]] = None):
        super().__init__(store, connection, user_cache)
        self.requests_per_hour = requests_per_hour
        self.search_limit = search_limit
        self.batch_size = batch_size

    # ===== ПОИСК =====

    async def get_existing_connection_ids(self, user_id: str) -> Set[str]:
        """Идентификаторы друзей и заявок в обе стороны"""
        try:
            snapshots = await self._run(self.store.collection(friends_collection(user_id)))
            return {snapshot.id for snapshot in snapshots}
        except Exception as e:
            logger.error(f"❌ Ошибка получения связей пользователя {user_id}: {e}")
            return set()

    async def search_users_by_name(self, query: str) -> Dict[str, UserData]:
        """
        Префиксный поиск по username без учёта регистра

        Запрос: 2-50 символов из букв, цифр, пробела и ._-
        Возвращает не больше search_limit пользователей с заполненным username.
        """
        cleaned = clean_search_query(query)
        if cleaned is None:
            logger.warning(f"⚠️ Недопустимый поисковый запрос: {query!r}")
            return {}

        try:
            search = (
                Query(USERS)
                .where('username', '>=', cleaned)
                .where('username', '<=', cleaned + PREFIX_SEARCH_END)
                .limit(self.search_limit)
            )
            snapshots = await self._run(self.store.query(search))

            users = {}
            for snapshot in snapshots:
                user = UserData.from_dict(snapshot.to_dict(), user_id=snapshot.id)
                if user.username:
                    users[snapshot.id] = user

            logger.info(f"🔍 Поиск '{cleaned}': найдено {len(users)}")
            return users
        except Exception as e:
            logger.error(f"❌ Ошибка поиска пользователей: {e}")
            return {}

    async def get_user_by_id(self, user_id: str) -> Optional[UserData]:
        cleaned = clean_user_id(user_id)
        if cleaned is None:
            logger.warning(f"⚠️ Недопустимый идентификатор пользователя: {user_id!r}")
            return None

        try:
            user = await self._get_user(cleaned)
            if user is None:
                logger.warning(f"⚠️ Пользователь не найден: {cleaned}")
            return user
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки пользователя {cleaned}: {e}")
            return None

    # ===== ЗАЯВКИ =====

    async def _recent_request_count(self, user_id: str) -> int:
        since = now_utc() - RATE_LIMIT_WINDOW
        recent = (
            Query(friends_collection(user_id))
            .where('addedAt', '>', since)
            .where('isRequester', '==', True)
        )
        return len(await self._run(self.store.query(recent)))

    async def send_friend_request(self, requester_id: str, target_id: str) -> FriendRequestResult:
        """Отправить заявку: две pending-записи с общим временем создания"""
        logger.info(f"📤 Заявка в друзья: {requester_id} -> {target_id}")

        if requester_id == target_id:
            return FriendRequestResult.failure("Нельзя добавить в друзья самого себя")

        try:
            if await self._recent_request_count(requester_id) >= self.requests_per_hour:
                logger.warning(f"⚠️ Превышен лимит заявок для {requester_id}")
                return FriendRequestResult.failure(
                    f"Слишком много заявок. Подождите час (лимит: {self.requests_per_hour} в час)"
                )

            outgoing = await self._run(self.store.get(friend_path(requester_id, target_id)))
            incoming = await self._run(self.store.get(friend_path(target_id, requester_id)))
            if outgoing.exists or incoming.exists:
                return FriendRequestResult.failure("Заявка уже отправлена или вы уже друзья")

            target = await self._get_user(target_id)
            if target is None:
                return FriendRequestResult.failure("Пользователь не найден")

            requester = await self._get_user(requester_id)
            if requester is None:
                return FriendRequestResult.failure("Не удалось загрузить ваши данные")

            now = now_utc()
            outgoing_request = Friend.from_user(target_id, target, now, FriendRequestStatus.PENDING, True)
            incoming_request = Friend.from_user(requester_id, requester, now, FriendRequestStatus.PENDING, False)

            batch = self.store.batch()
            batch.set(friend_path(requester_id, target_id), outgoing_request.to_dict())
            batch.set(friend_path(target_id, requester_id), incoming_request.to_dict())
            await self._run(batch.commit())

            logger.info(f"✅ Заявка отправлена: {requester_id} -> {target_id}")
            return FriendRequestResult.ok()

        except Exception as e:
            logger.error(f"❌ Ошибка отправки заявки {requester_id} -> {target_id}: {e}")
            return FriendRequestResult.failure("Не удалось отправить заявку")

    async def accept_friend_request(self, current_user_id: str, requester_id: str) -> bool:
        """Принять входящую заявку; обе записи становятся accepted"""
        try:
            own = await self._run(self.store.get(friend_path(current_user_id, requester_id)))
            other = await self._run(self.store.get(friend_path(requester_id, current_user_id)))

            if not own.exists or not other.exists:
                logger.warning(f"⚠️ Заявка {requester_id} -> {current_user_id} не найдена")
                return False

            own_record = Friend.from_dict(own.to_dict())
            other_record = Friend.from_dict(other.to_dict())
            if not (own_record.is_pending and other_record.is_pending):
                logger.warning(f"⚠️ Заявка {requester_id} -> {current_user_id} не в ожидании")
                return False
            if own_record.is_requester or not other_record.is_requester:
                logger.warning(f"⚠️ {current_user_id} не может принять собственную заявку")
                return False

            accepted = {'status': FriendRequestStatus.ACCEPTED.value}
            batch = self.store.batch()
            batch.update(friend_path(current_user_id, requester_id), accepted)
            batch.update(friend_path(requester_id, current_user_id), accepted)
            await self._run(batch.commit())

            logger.info(f"✅ Заявка принята: {requester_id} -> {current_user_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Ошибка принятия заявки: {e}")
            return False

    async def _delete_pair(self, user_id: str, peer_id: str) -> None:
        batch = self.store.batch()
        batch.delete(friend_path(user_id, peer_id))
        batch.delete(friend_path(peer_id, user_id))
        await self._run(batch.commit())

    async def reject_friend_request(self, current_user_id: str, requester_id: str) -> bool:
        """Отклонить заявку: обе записи удаляются"""
        try:
            await self._delete_pair(current_user_id, requester_id)
            logger.info(f"🚫 Заявка отклонена: {requester_id} -> {current_user_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Ошибка отклонения заявки: {e}")
            return False

    async def remove_friend(self, current_user_id: str, friend_id: str) -> bool:
        try:
            await self._delete_pair(current_user_id, friend_id)
            logger.info(f"👥 Удалён из друзей: {current_user_id} -x- {friend_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Ошибка удаления друга: {e}")
            return False

    # ===== СПИСКИ =====

    async def _load_records(self, query: Query) -> List[Friend]:
        snapshots = await self._run(self.store.query(query))
        return [Friend.from_dict(snapshot.to_dict()) for snapshot in snapshots]

    async def get_friends(self, user_id: str) -> List[Friend]:
        """Друзья с актуальной статистикой, по убыванию часов фокуса"""
        try:
            records = await self._load_records(
                Query(friends_collection(user_id)).where('status', '==', FriendRequestStatus.ACCEPTED.value)
            )
            if not records:
                return []

            users = await self._batch_get_users([record.user_id for record in records], self.batch_size)
            friends = [
                record.with_live_stats(users[record.user_id]) if record.user_id in users else record
                for record in records
            ]
            friends.sort(key=lambda friend: friend.focus_hours, reverse=True)

            logger.info(f"✅ Загружено друзей {user_id}: {len(friends)}")
            return friends
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки друзей {user_id}: {e}")
            return []

    async def _get_requests(self, user_id: str, is_requester: bool) -> List[Friend]:
        records = await self._load_records(
            Query(friends_collection(user_id))
            .where('status', '==', FriendRequestStatus.PENDING.value)
            .where('isRequester', '==', is_requester)
        )
        records.sort(key=lambda record: record.added_at, reverse=True)
        return records

    async def get_pending_requests(self, user_id: str) -> List[Friend]:
        """Входящие заявки, новые первыми"""
        try:
            return await self._get_requests(user_id, is_requester=False)
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки входящих заявок {user_id}: {e}")
            return []

    async def get_outgoing_requests(self, user_id: str) -> List[Friend]:
        """Исходящие заявки, новые первыми"""
        try:
            return await self._get_requests(user_id, is_requester=True)
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки исходящих заявок {user_id}: {e}")
            return []

    async def stream_friends(self, user_id: str) -> AsyncIterator[List[Friend]]:
        """Все записи о связях в реальном времени, по убыванию часов фокуса"""
        async for snapshots in self.store.watch_query(Query(friends_collection(user_id))):
            friends = [Friend.from_dict(snapshot.to_dict()) for snapshot in snapshots]
            friends.sort(key=lambda friend: friend.focus_hours, reverse=True)
            yield friends

    # ===== СТАТИСТИКА =====

    async def update_friend_stats(self, user_id: str, full_name: str, avatar_url: Optional[str],
                                  focus_hours: int, day_streak: int, rank_percentage: Optional[str],
                                  focus_hours_month: Optional[int] = None) -> int:
        """
        Обновить снимок статистики user_id у всех, кто связан с ним

        Перебирает всех пользователей хранилища: O(число пользователей)
        на каждый вызов. get_friends и так подставляет живую статистику.
        Возвращает число обновлённых записей.
        """
        logger.warning(f"⚠️ update_friend_stats перебирает всех пользователей ({user_id})")

        changes = {
            'fullName': full_name,
            'avatarUrl': avatar_url,
            'focusHours': focus_hours,
            'dayStreak': day_streak,
            'rankPercentage': rank_percentage,
        }
        if focus_hours_month is not None:
            changes['focusHoursMonth'] = focus_hours_month

        try:
            paths = []
            for user in await self._run(self.store.collection(USERS)):
                if user.id == user_id:
                    continue
                record = await self._run(self.store.get(friend_path(user.id, user_id)))
                if record.exists:
                    paths.append(record.path)

            batch_size = self.connection.recommended_batch_size if self.connection else DEFAULT_FANOUT_BATCH_SIZE
            for group in chunked(paths, batch_size):
                batch = self.store.batch()
                for path in group:
                    batch.update(path, changes)
                await self._run(batch.commit())

            logger.info(f"📊 Статистика {user_id} обновлена у {len(paths)} пользователей")
            return len(paths)
        except Exception as e:
            logger.error(f"❌ Ошибка обновления статистики друзей {user_id}: {e}")
            return 0
