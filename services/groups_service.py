# services/groups_service.py

import logging
from typing import AsyncIterator, List, Optional

from core.cache import CacheManager
from core.connection import ConnectionManager
from core.store import ArrayRemove, ArrayUnion, DocumentStore, Increment, Query, join_path
from models.group import Group, GroupMember, generate_invite_code
from models.user import UserData
from services.base import (
    DEFAULT_BATCH_FETCH_SIZE, GROUPS, StoreService, group_path, members_collection, user_path,
)
from utils.datetime_utils import now_utc
from utils.validators import is_valid_group_name

logger = logging.getLogger(__name__)

class GroupsService(StoreService):
    """
    Группы и участники

    Инвариант: memberCount == len(memberIds) == числу документов в
    groups/{id}/members. Все изменения состава группы делаются одной
    групповой записью вместе с groupIds пользователя.
    """

    def __init__(self, store: DocumentStore, connection: Optional[ConnectionManager] = None,
                 batch_size: int = DEFAULT_BATCH_FETCH_SIZE,
                 user_cache: Optional[CacheManager[UserData]] = None):
        super().__init__(store, connection, user_cache)
        self.batch_size = batch_size

    def _member_path(self, group_id: str, user_id: str) -> str:
        return join_path(members_collection(group_id), user_id)

    async def create_group(self, user_id: str, name: str, description: Optional[str] = None) -> Optional[Group]:
        """Создать группу, создатель становится первым участником"""
        if not is_valid_group_name(name):
            logger.warning(f"⚠️ Недопустимое название группы: {name!r}")
            return None

        try:
            creator = await self._get_user(user_id)
            if creator is None:
                logger.warning(f"⚠️ Создатель группы не найден: {user_id}")
                return None

            now = now_utc()
            group = Group(
                group_id=self.store.new_id(GROUPS),
                name=name.strip(),
                description=description,
                invite_code=generate_invite_code(),
                creator_id=user_id,
                created_at=now,
                member_ids=[user_id],
                member_count=1
            )
            member = GroupMember.from_user(user_id, creator, joined_at=now)

            batch = self.store.batch()
            batch.set(group_path(group.group_id), group.to_dict())
            batch.set(self._member_path(group.group_id, user_id), member.to_dict())
            batch.update(user_path(user_id), {'groupIds': ArrayUnion([group.group_id])})
            await self._run(batch.commit())

            logger.info(f"✅ Группа '{group.name}' создана: {group.group_id} (код {group.invite_code})")
            return group
        except Exception as e:
            logger.error(f"❌ Ошибка создания группы: {e}")
            return None

    async def find_group_by_code(self, invite_code: str) -> Optional[Group]:
        code = (invite_code or "").strip().upper()
        if not code:
            return None
        snapshots = await self._run(self.store.query(Query(GROUPS).where('inviteCode', '==', code).limit(1)))
        if not snapshots:
            return None
        return Group.from_dict(snapshots[0].to_dict())

    async def join_group(self, user_id: str, invite_code: str) -> bool:
        """Вступить в группу по коду приглашения (без учёта регистра)"""
        try:
            group = await self.find_group_by_code(invite_code)
            if group is None:
                logger.warning(f"⚠️ Группа с кодом {invite_code!r} не найдена")
                return False

            if group.is_member(user_id):
                logger.warning(f"⚠️ {user_id} уже состоит в группе {group.group_id}")
                return False

            user = await self._get_user(user_id)
            if user is None:
                logger.warning(f"⚠️ Пользователь не найден: {user_id}")
                return False

            member = GroupMember.from_user(user_id, user)

            batch = self.store.batch()
            batch.set(self._member_path(group.group_id, user_id), member.to_dict())
            batch.update(group_path(group.group_id), {
                'memberIds': ArrayUnion([user_id]),
                'memberCount': Increment(1),
            })
            batch.update(user_path(user_id), {'groupIds': ArrayUnion([group.group_id])})
            await self._run(batch.commit())

            logger.info(f"✅ {user_id} вступил в группу {group.group_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Ошибка вступления в группу: {e}")
            return False

    async def leave_group(self, user_id: str, group_id: str) -> bool:
        """Выйти из группы; последний участник-создатель удаляет группу целиком"""
        try:
            group = await self.get_group(group_id)
            if group is None:
                logger.warning(f"⚠️ Группа не найдена: {group_id}")
                return False

            if not group.is_member(user_id):
                logger.warning(f"⚠️ {user_id} не состоит в группе {group_id}")
                return False

            if group.is_creator(user_id) and group.member_count <= 1:
                return await self.delete_group(group_id)

            batch = self.store.batch()
            batch.delete(self._member_path(group_id, user_id))
            batch.update(group_path(group_id), {
                'memberIds': ArrayRemove([user_id]),
                'memberCount': Increment(-1),
            })
            batch.update(user_path(user_id), {'groupIds': ArrayRemove([group_id])})
            await self._run(batch.commit())

            logger.info(f"🚪 {user_id} вышел из группы {group_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Ошибка выхода из группы: {e}")
            return False

    async def delete_group(self, group_id: str, requested_by: Optional[str] = None) -> bool:
        """Удалить группу, её участников и ссылки у пользователей

        Если передан requested_by, удалить может только создатель.
        """
        try:
            group = await self.get_group(group_id)
            if group is None:
                logger.warning(f"⚠️ Группа не найдена: {group_id}")
                return False

            if requested_by is not None and not group.is_creator(requested_by):
                logger.warning(f"⚠️ {requested_by} не создатель группы {group_id}")
                return False

            members = await self._run(self.store.collection(members_collection(group_id)))
            member_ids = [snapshot.id for snapshot in members]
            existing_users = await self._batch_get_users(member_ids, self.batch_size)

            batch = self.store.batch()
            for member_id in member_ids:
                if member_id in existing_users:
                    batch.update(user_path(member_id), {'groupIds': ArrayRemove([group_id])})
            for snapshot in members:
                batch.delete(snapshot.path)
            batch.delete(group_path(group_id))
            await self._run(batch.commit())

            logger.info(f"🗑️ Группа {group_id} удалена ({len(member_ids)} участников)")
            return True
        except Exception as e:
            logger.error(f"❌ Ошибка удаления группы {group_id}: {e}")
            return False

    async def get_group(self, group_id: str) -> Optional[Group]:
        try:
            snapshot = await self._run(self.store.get(group_path(group_id)))
            if not snapshot.exists:
                return None
            return Group.from_dict(snapshot.to_dict())
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки группы {group_id}: {e}")
            return None

    async def _load_groups(self, group_ids: List[str]) -> List[Group]:
        groups = []
        for group_id in group_ids:
            group = await self.get_group(group_id)
            if group is not None:
                groups.append(group)
        groups.sort(key=lambda group: group.created_at, reverse=True)
        return groups

    async def get_user_groups(self, user_id: str) -> List[Group]:
        """Группы пользователя, новые первыми"""
        try:
            user = await self._get_user(user_id)
            if user is None or not user.group_ids:
                return []
            groups = await self._load_groups(user.group_ids)
            logger.info(f"✅ Загружено групп {user_id}: {len(groups)}")
            return groups
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки групп {user_id}: {e}")
            return []

    async def get_group_members(self, group_id: str) -> List[GroupMember]:
        """Участники с актуальной статистикой, по убыванию часов фокуса"""
        try:
            snapshots = await self._run(self.store.collection(members_collection(group_id)))
            records = [GroupMember.from_dict(snapshot.to_dict()) for snapshot in snapshots]
            if not records:
                return []

            users = await self._batch_get_users([record.user_id for record in records], self.batch_size)
            members = []
            for record in records:
                if record.user_id in users:
                    members.append(record.with_live_stats(users[record.user_id]))
                else:
                    logger.debug(f"⚠️ Кэшированные данные участника {record.user_id}")
                    members.append(record)

            members.sort(key=lambda member: member.focus_hours, reverse=True)
            return members
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки участников {group_id}: {e}")
            return []

    async def stream_user_groups(self, user_id: str) -> AsyncIterator[List[Group]]:
        """Группы пользователя при каждом изменении его документа"""
        async for snapshot in self.store.watch(user_path(user_id)):
            if not snapshot.exists:
                yield []
                continue
            user = UserData.from_dict(snapshot.to_dict(), user_id=user_id)
            yield await self._load_groups(user.group_ids)
