"""오디오 파일 저장소.

업로드된 오디오 청크를 디스크에 저장하고 삭제합니다. 파일 이름에 UUID 를 붙여
진행 중인 세션이 가진 파일 이름이 다른 업로드에 재사용되지 않도록 합니다.
삭제는 멱등적입니다 (이미 없는 파일은 조용히 넘어감).
"""

import asyncio
import logging
import re
import uuid
from pathlib import Path
from typing import Iterable, Optional

from .config import recording_config

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


class TransientUploadError(Exception):
    """오디오 파일 저장 실패. 업로드한 클라이언트에 전달되며 참가자 수에 반영되지 않습니다."""


def _safe_component(value: str, limit: int = 40) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", value).strip("_")
    return cleaned[:limit] or "unknown"


class AudioStorage:
    """디스크 기반 오디오 저장소.

    Attributes:
        base_dir (Path): 저장 디렉토리
    """

    DEFAULT_SUFFIX = ".webm"

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else recording_config.RECORDINGS_DIR

    def ensure_dir(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def build_path(self, room_id: str, contributor: str, filename: Optional[str] = None) -> Path:
        suffix = Path(filename).suffix if filename else ""
        if not re.fullmatch(r"\.[A-Za-z0-9]{1,8}", suffix or ""):
            suffix = self.DEFAULT_SUFFIX
        name = f"{_safe_component(room_id)}_{_safe_component(contributor)}_{uuid.uuid4().hex}{suffix}"
        return self.base_dir / name

    async def save(self, room_id: str, contributor: str, data: bytes, filename: Optional[str] = None) -> Path:
        """오디오 바이트를 새 파일로 저장합니다.

        Raises:
            TransientUploadError: 디스크 쓰기 실패
        """
        path = self.build_path(room_id, contributor, filename)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            logger.error(f"오디오 저장 실패 ({path}): {e}")
            raise TransientUploadError(f"Failed to store audio for room '{room_id}'") from e
        logger.debug(f"오디오 저장: {path} ({len(data)} bytes)")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        self.ensure_dir()
        path.write_bytes(data)

    async def delete(self, path: Path) -> bool:
        """파일을 삭제합니다. 이미 없으면 False, 오류는 로그만 남깁니다."""
        try:
            await asyncio.to_thread(self._unlink, Path(path))
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"오디오 삭제 실패 ({path}): {e}")
            return False

    @staticmethod
    def _unlink(path: Path) -> None:
        path.unlink()

    async def delete_many(self, paths: Iterable[Path]) -> int:
        """여러 파일을 삭제하고 실제 삭제된 개수를 반환합니다."""
        deleted = 0
        for path in paths:
            if await self.delete(path):
                deleted += 1
        return deleted
