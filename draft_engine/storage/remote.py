"""
Remote Content Store - 원격 콘텐츠 저장소 구현

- HttpContentStore: git 호스팅 contents API (httpx AsyncClient)
    * 사용자별 드래프트 브랜치에 커밋, 게시본은 main 브랜치
    * GET  /git/ref/heads/{branch}          브랜치 존재 확인 (404 = 드래프트 없음)
    * POST /git/refs                        main에서 드래프트 브랜치 생성
    * GET  /contents/{path}?ref={branch}    base64 JSON 파일 조회
    * PUT  /contents/{path}                 파일 커밋 (기존 blob sha 필요, 409 시 재시도)
    * POST /merges                          발행: 드래프트 브랜치를 main에 병합
    * DELETE /git/refs/heads/{branch}      병합 후 드래프트 브랜치 삭제
- InMemoryContentStore: 개발/테스트용 메모리 저장소 (실패 주입 가능)
"""

import asyncio
import base64
import json
import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from draft_engine.exceptions import RemoteCommitError, RemoteStoreError
from draft_engine.models.content_unit import GLOBALS_UNIT_ID, ContentUnit
from draft_engine.storage.base import RemoteContentStore

logger = logging.getLogger(__name__)


# 페이지 ID -> 파일 이름 예외
PAGE_FILE_ALIASES = {"home": "index"}


class HttpContentStore(RemoteContentStore):
    """
    HTTP 원격 저장소.

    Example:
        store = HttpContentStore(owner="acme", repo="site", token="...", draft_branch="cms-draft-alice")
        unit = await store.load_unit("index")
        await store.save_unit("index", unit, "Update hero")
        await store.aclose()
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        draft_branch: str = "cms-draft",
        main_branch: str = "main",
        base_url: str = "https://api.github.com",
        pages_dir: str = "src/content/pages",
        globals_path: str = "src/content/globals.json",
        timeout_seconds: float = 30.0,
        max_conflict_retries: int = 2,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.owner = owner
        self.repo = repo
        self.draft_branch = draft_branch
        self.main_branch = main_branch
        self.pages_dir = pages_dir.rstrip("/")
        self.globals_path = globals_path
        self.max_conflict_retries = max(int(max_conflict_retries), 0)
        self._commit_lock = asyncio.Lock()
        self.repo_url = f"{base_url.rstrip('/')}/repos/{owner}/{repo}"

        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(headers=headers, timeout=timeout_seconds)
        if client is not None:
            self._client.headers.update(headers)

    @classmethod
    def from_settings(cls, settings: Dict[str, Any], token: Optional[str] = None, **kwargs) -> "HttpContentStore":
        """engine.yaml의 remote 섹션으로 생성"""
        prefix = settings.get("draft_branch_prefix", "cms-draft")
        user = kwargs.pop("user", None)
        return cls(
            owner=settings.get("owner", ""),
            repo=settings.get("repo", ""),
            token=token,
            draft_branch=f"{prefix}-{user}" if user else prefix,
            main_branch=settings.get("main_branch", "main"),
            base_url=settings.get("base_url", "https://api.github.com"),
            pages_dir=settings.get("pages_dir", "src/content/pages"),
            globals_path=settings.get("globals_path", "src/content/globals.json"),
            timeout_seconds=float(settings.get("timeout_seconds", 30.0)),
            max_conflict_retries=int(settings.get("max_conflict_retries", 2)),
            **kwargs
        )

    # -------------------------------------------------------------------------
    # 경로 / 요청 헬퍼
    # -------------------------------------------------------------------------

    def path_for(self, unit_id: str) -> str:
        """단위 ID -> 저장소 파일 경로 (home은 index.json)"""
        if unit_id == GLOBALS_UNIT_ID:
            return self.globals_path
        file_name = PAGE_FILE_ALIASES.get(unit_id, unit_id)
        return f"{self.pages_dir}/{file_name}.json"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.repo_url}{path}"
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} {path} failed: {e}") from e

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        try:
            data = response.json()
            detail = data.get("message", "") if isinstance(data, dict) else ""
        except ValueError:
            detail = response.text[:200]
        raise RemoteStoreError(
            f"{action} failed ({response.status_code}): {detail}".rstrip(": "),
            status_code=response.status_code
        )

    async def _branch_sha(self, branch: str) -> Optional[str]:
        response = await self._request("GET", f"/git/ref/heads/{branch}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"Branch lookup '{branch}'")
        return response.json().get("object", {}).get("sha")

    async def _ensure_draft_branch(self) -> None:
        if await self._branch_sha(self.draft_branch):
            return

        main_sha = await self._branch_sha(self.main_branch)
        if not main_sha:
            raise RemoteStoreError(f"Main branch '{self.main_branch}' not found", status_code=404)

        response = await self._request(
            "POST",
            "/git/refs",
            json={"ref": f"refs/heads/{self.draft_branch}", "sha": main_sha}
        )
        # 동시에 생성된 경우 (422 Reference already exists)
        if response.status_code == 422:
            return
        self._raise_for_status(response, f"Create branch '{self.draft_branch}'")
        logger.info(f"드래프트 브랜치 생성: {self.draft_branch} (from {self.main_branch})")

    async def _get_file(self, path: str, ref: str) -> Optional[Dict[str, Any]]:
        response = await self._request("GET", f"/contents/{path}", params={"ref": ref})
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"Read '{path}@{ref}'")
        return response.json()

    def _decode(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        raw = base64.b64decode(payload.get("content", "") or "")
        try:
            return json.loads(raw.decode("utf-8")) if raw else {}
        except ValueError as e:
            raise RemoteStoreError(f"Invalid JSON document: {payload.get('path')}") from e

    async def _load_from(self, unit_id: str, ref: str) -> Optional[ContentUnit]:
        payload = await self._get_file(self.path_for(unit_id), ref)
        if payload is None:
            return None
        return ContentUnit.from_document(unit_id, self._decode(payload))

    # -------------------------------------------------------------------------
    # RemoteContentStore
    # -------------------------------------------------------------------------

    async def load_unit(self, unit_id: str) -> Optional[ContentUnit]:
        return await self._load_from(unit_id, self.main_branch)

    async def has_unpublished_draft(self) -> bool:
        return await self._branch_sha(self.draft_branch) is not None

    async def load_remote_draft(self, unit_id: str) -> Optional[ContentUnit]:
        # 브랜치 존재 여부는 호출 측이 has_unpublished_draft로 확인 (없으면 404 -> None)
        return await self._load_from(unit_id, self.draft_branch)

    async def _put_file(self, unit_id: str, path: str, content: str, message: Optional[str]) -> None:
        body = {
            "message": message or f"Update {unit_id}",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.draft_branch,
        }
        for attempt in range(self.max_conflict_retries + 1):
            existing = await self._get_file(path, self.draft_branch)
            if existing and existing.get("sha"):
                body["sha"] = existing["sha"]
            else:
                body.pop("sha", None)

            response = await self._request("PUT", f"/contents/{path}", json=body)
            # 409: 브랜치 ref가 다른 커밋으로 이동함, blob sha를 다시 읽고 재시도
            if response.status_code == 409 and attempt < self.max_conflict_retries:
                logger.warning(f"[{unit_id}] 커밋 충돌 (409), 재시도 {attempt + 1}/{self.max_conflict_retries}")
                continue
            self._raise_for_status(response, f"Commit '{path}'")
            return

    async def save_unit(self, unit_id: str, unit: ContentUnit, message: Optional[str] = None) -> None:
        path = self.path_for(unit_id)
        content = json.dumps(unit.to_document(), ensure_ascii=False, indent=2) + "\n"
        try:
            # 같은 브랜치로의 PUT은 하나씩 (동시 PUT은 ref 충돌)
            async with self._commit_lock:
                await self._ensure_draft_branch()
                await self._put_file(unit_id, path, content, message)
        except RemoteStoreError as e:
            raise RemoteCommitError(unit_id, str(e), status_code=e.status_code) from e

        logger.info(f"[{unit_id}] 커밋 완료: {path}@{self.draft_branch}")

    async def publish_draft(self, message: Optional[str] = None) -> bool:
        """
        드래프트 브랜치를 main에 병합한 뒤 브랜치 삭제.

        Returns:
            병합했으면 True, 드래프트 브랜치가 없으면 False

        Raises:
            RemoteStoreError: 병합 충돌 또는 브랜치 삭제 실패
        """
        async with self._commit_lock:
            if await self._branch_sha(self.draft_branch) is None:
                logger.info(f"병합할 드래프트 브랜치 없음: {self.draft_branch}")
                return False

            response = await self._request(
                "POST",
                "/merges",
                json={
                    "base": self.main_branch,
                    "head": self.draft_branch,
                    "commit_message": message or f"Publish changes from {self.draft_branch}",
                }
            )
            # 201 병합 커밋 생성, 204 이미 반영됨
            self._raise_for_status(response, f"Merge '{self.draft_branch}' into '{self.main_branch}'")

            response = await self._request("DELETE", f"/git/refs/heads/{self.draft_branch}")
            if response.status_code not in (404, 422):
                self._raise_for_status(response, f"Delete branch '{self.draft_branch}'")

        logger.info(f"드래프트 브랜치 병합 완료: {self.draft_branch} -> {self.main_branch}")
        return True

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class InMemoryContentStore(RemoteContentStore):
    """
    메모리 원격 저장소.

    fail_units에 포함된 단위는 save_unit에서 RemoteCommitError를 발생시킵니다.
    fail_publish가 True이면 publish_draft가 RemoteStoreError를 발생시킵니다 (병합 충돌).
    """

    def __init__(
        self,
        units: Optional[Dict[str, ContentUnit]] = None,
        drafts: Optional[Dict[str, ContentUnit]] = None,
        fail_units: Iterable[str] = (),
        fail_publish: bool = False
    ):
        self.units: Dict[str, Dict[str, Any]] = {
            unit_id: unit.to_document() for unit_id, unit in (units or {}).items()
        }
        self.drafts: Dict[str, Dict[str, Any]] = {
            unit_id: unit.to_document() for unit_id, unit in (drafts or {}).items()
        }
        self.fail_units = set(fail_units)
        self.fail_publish = fail_publish
        self.commits: list = []
        self.published: list = []

    async def load_unit(self, unit_id: str) -> Optional[ContentUnit]:
        document = self.units.get(unit_id)
        if document is None:
            return None
        return ContentUnit.from_document(unit_id, json.loads(json.dumps(document)))

    async def save_unit(self, unit_id: str, unit: ContentUnit, message: Optional[str] = None) -> None:
        if unit_id in self.fail_units:
            raise RemoteCommitError(unit_id, "commit rejected", status_code=500)
        document = json.loads(json.dumps(unit.to_document()))
        self.drafts[unit_id] = document
        self.commits.append({"unit_id": unit_id, "message": message, "document": document})

    async def has_unpublished_draft(self) -> bool:
        return bool(self.drafts)

    async def load_remote_draft(self, unit_id: str) -> Optional[ContentUnit]:
        document = self.drafts.get(unit_id)
        if document is None:
            return None
        return ContentUnit.from_document(unit_id, json.loads(json.dumps(document)))

    async def publish_draft(self, message: Optional[str] = None) -> bool:
        if not self.drafts:
            return False
        if self.fail_publish:
            raise RemoteStoreError("merge conflict", status_code=409)
        self.units.update(self.drafts)
        self.published.append({"message": message, "unit_ids": sorted(self.drafts)})
        self.drafts = {}
        return True


__all__ = [
    "PAGE_FILE_ALIASES",
    "HttpContentStore",
    "InMemoryContentStore",
]
