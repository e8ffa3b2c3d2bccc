# services/project_service.py

import logging
from typing import AsyncIterator, List, Optional

from core.store import DocumentNotFoundError, Query, join_path
from models.project import UNSET_PROJECT_ID, Project, Subproject
from services.base import StoreService, projects_collection
from utils.datetime_utils import now_utc
from utils.validators import is_valid_color, is_valid_project_name

logger = logging.getLogger(__name__)

class ProjectError(Exception):
    """Недопустимая операция с проектом"""

class ProjectService(StoreService):
    """
    Проекты и подпроекты пользователя (users/{uid}/projects)

    Операции записи логируют ошибку и пробрасывают её дальше,
    операции чтения возвращают None или пустой список.
    """

    def _path(self, user_id: str, project_id: str) -> str:
        return join_path(projects_collection(user_id), project_id)

    def _ordered(self, user_id: str) -> Query:
        return Query(projects_collection(user_id)).order_by('createdAt')

    async def initialize_default_project(self, user_id: str) -> Project:
        """Создать проект "Unset" для нового пользователя"""
        try:
            project = Project.unset()
            await self.save_project(user_id, project)
            logger.info(f"🎯 Проект по умолчанию создан для {user_id}")
            return project
        except Exception as e:
            logger.error(f"❌ Ошибка создания проекта по умолчанию для {user_id}: {e}")
            raise

    async def create_project(self, user_id: str, name: str, color: Optional[str] = None,
                             emoji: Optional[str] = None) -> Project:
        try:
            if not is_valid_project_name(name):
                raise ProjectError(f"Недопустимое название проекта: {name!r}")
            if color is not None and not is_valid_color(color):
                raise ProjectError(f"Недопустимый цвет: {color!r}")

            project = Project.create(name.strip(), color=color, emoji=emoji)
            await self.save_project(user_id, project)
            logger.info(f"📝 Проект создан: {project.id}")
            return project
        except Exception as e:
            logger.error(f"❌ Ошибка создания проекта для {user_id}: {e}")
            raise

    async def save_project(self, user_id: str, project: Project) -> None:
        try:
            await self._run(self.store.set(self._path(user_id, project.id), project.to_dict()))
            logger.debug(f"💾 Проект {project.id} сохранён")
        except Exception as e:
            logger.error(f"❌ Ошибка сохранения проекта {project.id}: {e}")
            raise

    async def load_project(self, user_id: str, project_id: str) -> Optional[Project]:
        try:
            snapshot = await self._run(self.store.get(self._path(user_id, project_id)))
            if not snapshot.exists:
                logger.warning(f"⚠️ Проект {project_id} не найден")
                return None
            return Project.from_dict(snapshot.to_dict())
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки проекта {project_id}: {e}")
            return None

    async def load_all_projects(self, user_id: str) -> List[Project]:
        """Все проекты, старые первыми"""
        try:
            snapshots = await self._run(self.store.query(self._ordered(user_id)))
            projects = [Project.from_dict(snapshot.to_dict()) for snapshot in snapshots]
            logger.debug(f"📥 Загружено проектов {user_id}: {len(projects)}")
            return projects
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки проектов {user_id}: {e}")
            return []

    async def get_default_project(self, user_id: str) -> Optional[Project]:
        return await self.load_project(user_id, UNSET_PROJECT_ID)

    async def stream_projects(self, user_id: str) -> AsyncIterator[List[Project]]:
        async for snapshots in self.store.watch_query(self._ordered(user_id)):
            yield [Project.from_dict(snapshot.to_dict()) for snapshot in snapshots]

    async def update_project(self, user_id: str, project: Project) -> Project:
        try:
            updated = project.copy_with(updated_at=now_utc())
            await self.save_project(user_id, updated)
            logger.info(f"🔄 Проект {project.id} обновлён")
            return updated
        except Exception as e:
            logger.error(f"❌ Ошибка обновления проекта {project.id}: {e}")
            raise

    async def delete_project(self, user_id: str, project_id: str) -> None:
        """Удалить проект; проект "Unset" удалить нельзя"""
        try:
            if project_id == UNSET_PROJECT_ID:
                raise ProjectError('Нельзя удалить проект по умолчанию "Unset"')

            await self._run(self.store.delete(self._path(user_id, project_id)))
            logger.info(f"🗑️ Проект {project_id} удалён")
        except Exception as e:
            logger.error(f"❌ Ошибка удаления проекта {project_id}: {e}")
            raise

    async def _require_project(self, user_id: str, project_id: str) -> Project:
        project = await self.load_project(user_id, project_id)
        if project is None:
            raise DocumentNotFoundError(self._path(user_id, project_id))
        return project

    async def add_subproject(self, user_id: str, project_id: str, name: str) -> Subproject:
        try:
            project = await self._require_project(user_id, project_id)
            subproject = Subproject.create(name)
            await self.save_project(user_id, project.add_subproject(subproject))
            logger.info(f"➕ Подпроект {subproject.id} добавлен в {project_id}")
            return subproject
        except Exception as e:
            logger.error(f"❌ Ошибка добавления подпроекта: {e}")
            raise

    async def update_subproject(self, user_id: str, project_id: str, subproject: Subproject) -> None:
        try:
            project = await self._require_project(user_id, project_id)
            updated = subproject.copy_with(updated_at=now_utc())
            await self.save_project(user_id, project.update_subproject(updated))
            logger.info(f"🔄 Подпроект {subproject.id} обновлён")
        except Exception as e:
            logger.error(f"❌ Ошибка обновления подпроекта: {e}")
            raise

    async def remove_subproject(self, user_id: str, project_id: str, subproject_id: str) -> None:
        try:
            project = await self._require_project(user_id, project_id)
            await self.save_project(user_id, project.remove_subproject(subproject_id))
            logger.info(f"➖ Подпроект {subproject_id} удалён из {project_id}")
        except Exception as e:
            logger.error(f"❌ Ошибка удаления подпроекта: {e}")
            raise
