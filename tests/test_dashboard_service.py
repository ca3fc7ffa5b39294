import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import StoreFailureError
from app.services.dashboard_service import DashboardService
from tests.factories import OWNER_ID


def _session_factory():
    @asynccontextmanager
    async def factory():
        yield MagicMock()

    return factory


def _kpi_row(total=3, active=2, submissions=9):
    return MagicMock(total_forms=total, active_forms=active, total_submissions=submissions)


def _form_rows():
    return [
        {
            "id": uuid4(),
            "client_name": "Acme",
            "subdomain": "acme",
            "score_threshold": 60,
            "is_active": True,
            "submission_count": 4,
        }
    ]


def _repo(kpis=None, forms=None):
    repo = MagicMock()
    repo.get_kpis = AsyncMock(**kpis) if kpis else AsyncMock(return_value=_kpi_row())
    repo.get_forms_with_submission_counts = (
        AsyncMock(**forms) if forms else AsyncMock(return_value=_form_rows())
    )
    return repo


_DOWN = OperationalError("SELECT", {}, Exception("down"))


class TestGetDashboard:
    @pytest.mark.asyncio
    async def test_both_reads_succeed_and_are_cached(self, mock_cache, mock_redis):
        service = DashboardService(_session_factory(), cache=mock_cache, timeout=1)

        with patch("app.services.dashboard_service.DashboardRepository", return_value=_repo()):
            response = await service.get_dashboard(OWNER_ID)

        assert response.kpis.total_forms == 3
        assert response.kpis.total_submissions == 9
        assert response.forms[0].submission_count == 4
        assert response.errors == []
        assert f"dashboard:kpis:{OWNER_ID}" in mock_redis.store
        assert f"dashboard:forms:{OWNER_ID}" in mock_redis.store

    @pytest.mark.asyncio
    async def test_kpi_failure_does_not_hide_forms(self, mock_cache):
        service = DashboardService(_session_factory(), cache=mock_cache, timeout=1)
        repo = _repo(kpis={"side_effect": _DOWN})

        with patch("app.services.dashboard_service.DashboardRepository", return_value=repo):
            response = await service.get_dashboard(OWNER_ID)

        assert response.kpis is None
        assert response.kpis_stale is False
        assert len(response.forms) == 1
        assert response.errors == ["Could not load dashboard KPIs"]

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_last_good_value(self, mock_cache):
        service = DashboardService(_session_factory(), cache=mock_cache, timeout=1)
        with patch("app.services.dashboard_service.DashboardRepository", return_value=_repo()):
            await service.get_dashboard(OWNER_ID)

        failing = _repo(forms={"side_effect": _DOWN})
        with patch("app.services.dashboard_service.DashboardRepository", return_value=failing):
            response = await service.get_dashboard(OWNER_ID)

        assert response.forms_stale is True
        assert response.forms[0].client_name == "Acme"
        assert response.kpis_stale is False
        assert response.errors == ["Could not load forms"]

    @pytest.mark.asyncio
    async def test_slow_read_times_out(self, mock_cache):
        async def _slow(owner_id):
            await asyncio.sleep(1)

        service = DashboardService(_session_factory(), cache=mock_cache, timeout=0.01)
        repo = _repo(kpis={"side_effect": _slow})

        with patch("app.services.dashboard_service.DashboardRepository", return_value=repo):
            response = await service.get_dashboard(OWNER_ID)

        assert response.kpis is None
        assert response.forms is not None
        assert "Could not load dashboard KPIs" in response.errors

    @pytest.mark.asyncio
    async def test_works_without_redis(self):
        from app.core.cache import CacheService

        service = DashboardService(
            _session_factory(), cache=CacheService(redis_client=None), timeout=1
        )
        repo = _repo(forms={"side_effect": _DOWN})

        with patch("app.services.dashboard_service.DashboardRepository", return_value=repo):
            response = await service.get_dashboard(OWNER_ID)

        assert response.kpis.active_forms == 2
        assert response.forms is None


class TestListForms:
    @pytest.mark.asyncio
    async def test_list_forms_raises_on_failure(self, mock_cache):
        service = DashboardService(_session_factory(), cache=mock_cache, timeout=1)
        repo = _repo(forms={"side_effect": _DOWN})

        with patch("app.services.dashboard_service.DashboardRepository", return_value=repo):
            with pytest.raises(StoreFailureError):
                await service.list_forms(OWNER_ID)
