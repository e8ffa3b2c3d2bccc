# services/notification_service.py

import logging
from typing import AsyncIterator, List, Optional

from core.connection import ConnectionManager
from core.store import DocumentStore, Query, WriteBatch, join_path
from models.enums import NotificationType
from models.notification import AppNotification
from services.base import StoreService, chunked, notifications_collection
from utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

NOTIFICATIONS_LIMIT = 50
NUDGE_MESSAGE = "подбадривает вас не сбавлять темп!"

class NotificationService(StoreService):
    """Уведомления пользователя (users/{uid}/notifications)"""

    def __init__(self, store: DocumentStore, connection: Optional[ConnectionManager] = None,
                 limit: int = NOTIFICATIONS_LIMIT):
        super().__init__(store, connection)
        self.limit = limit

    def _path(self, user_id: str, notification_id: str) -> str:
        return join_path(notifications_collection(user_id), notification_id)

    def _unread(self, user_id: str) -> Query:
        return Query(notifications_collection(user_id)).where('isRead', '==', False)

    async def send_notification(self, to_user_id: str, type: str, from_user_id: str, from_user_name: str,
                                from_user_avatar: Optional[str] = None,
                                message: Optional[str] = None) -> AppNotification:
        try:
            notification = AppNotification(
                id=self.store.new_id(notifications_collection(to_user_id)),
                type=type,
                from_user_id=from_user_id,
                from_user_name=from_user_name,
                from_user_avatar=from_user_avatar,
                message=message,
                created_at=now_utc(),
                is_read=False
            )
            await self._run(self.store.set(self._path(to_user_id, notification.id), notification.to_dict()))
            logger.info(f"🔔 Уведомление {type} отправлено {to_user_id}")
            return notification
        except Exception as e:
            logger.error(f"❌ Ошибка отправки уведомления: {e}")
            raise

    async def send_nudge(self, to_user_id: str, from_user_id: str, from_user_name: str,
                         from_user_avatar: Optional[str] = None) -> AppNotification:
        return await self.send_notification(
            to_user_id=to_user_id,
            type=NotificationType.NUDGE.value,
            from_user_id=from_user_id,
            from_user_name=from_user_name,
            from_user_avatar=from_user_avatar,
            message=NUDGE_MESSAGE
        )

    async def stream_notifications(self, user_id: str) -> AsyncIterator[List[AppNotification]]:
        """Последние уведомления, новые первыми"""
        query = Query(notifications_collection(user_id)).order_by('createdAt', descending=True).limit(self.limit)
        async for snapshots in self.store.watch_query(query):
            yield [AppNotification.from_dict(snapshot.to_dict()) for snapshot in snapshots]

    async def stream_unread_count(self, user_id: str) -> AsyncIterator[int]:
        async for snapshots in self.store.watch_query(self._unread(user_id)):
            yield len(snapshots)

    async def mark_as_read(self, user_id: str, notification_id: str) -> bool:
        try:
            await self._run(self.store.update(self._path(user_id, notification_id), {'isRead': True}))
            return True
        except Exception as e:
            logger.error(f"❌ Ошибка отметки уведомления {notification_id}: {e}")
            return False

    async def mark_all_as_read(self, user_id: str) -> int:
        """Отметить все непрочитанные групповыми записями; возвращает число отмеченных"""
        marked = 0
        try:
            snapshots = await self._run(self.store.query(self._unread(user_id)))
            for group in chunked(snapshots, WriteBatch.MAX_OPERATIONS):
                batch = self.store.batch()
                for snapshot in group:
                    batch.update(snapshot.path, {'isRead': True})
                await self._run(batch.commit())
                marked += len(group)
            logger.debug(f"📭 Прочитано уведомлений {user_id}: {marked}")
            return marked
        except Exception as e:
            logger.error(f"❌ Ошибка отметки всех уведомлений {user_id} (отмечено {marked}): {e}")
            return marked

    async def delete_notification(self, user_id: str, notification_id: str) -> bool:
        try:
            await self._run(self.store.delete(self._path(user_id, notification_id)))
            return True
        except Exception as e:
            logger.error(f"❌ Ошибка удаления уведомления {notification_id}: {e}")
            return False
