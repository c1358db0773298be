"""Tests for auth data reconciliation."""

from unittest.mock import AsyncMock

import pytest
from conftest import FakeProvider

from baas_identity.exceptions import RequestError
from baas_identity.identity import AuthDataReconciler, AuthProviderRegistry, Identity


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider("weixin")


@pytest.fixture
def reconciler(provider: FakeProvider) -> AuthDataReconciler:
    registry = AuthProviderRegistry()
    registry.register(provider)
    return AuthDataReconciler(registry)


def linked_identity(is_current: bool = True) -> Identity:
    return Identity(id="u1", auth_data={"weixin": {"openid": "abc"}}, is_current=is_current)


class TestReconcile:
    """Tests for the async reconciliation path."""

    @pytest.mark.asyncio
    async def test_restores_current_identity(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test that linked payloads reach their provider."""
        await reconciler.reconcile_all(linked_identity())

        assert provider.restored == [{"openid": "abc"}]

    @pytest.mark.asyncio
    async def test_non_current_identity_is_ignored(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test that identities that are not current are left alone."""
        await reconciler.reconcile_all(linked_identity(is_current=False))

        assert provider.restored == []

    @pytest.mark.asyncio
    async def test_missing_auth_data_is_noop(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test reconciling an identity with no links."""
        await reconciler.reconcile_all(Identity(is_current=True))

        assert provider.restored == []

    @pytest.mark.asyncio
    async def test_unregistered_provider_is_skipped(self, reconciler: AuthDataReconciler) -> None:
        """Test that links without a registered provider are kept as-is."""
        identity = Identity(auth_data={"weibo": {"uid": "1"}}, is_current=True)

        await reconciler.reconcile_all(identity)

        assert identity.auth_data == {"weibo": {"uid": "1"}}

    @pytest.mark.asyncio
    async def test_tombstones_are_not_restored(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test that a pending unlink is not handed to the provider."""
        identity = Identity(auth_data={"weixin": None}, is_current=True)

        await reconciler.reconcile_one(identity, "weixin")

        assert provider.restored == []

    @pytest.mark.asyncio
    async def test_empty_payload_is_restored(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test that an empty payload still counts as a link."""
        identity = Identity(auth_data={"weixin": {}}, is_current=True)

        await reconciler.reconcile_one(identity, "weixin")

        assert provider.restored == [{}]

    @pytest.mark.asyncio
    async def test_refused_payload_invokes_unlink_handler(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test that a refused payload triggers the unlink handler."""
        provider.restore_result = False
        reconciler.on_restore_failed = AsyncMock()
        identity = linked_identity()

        await reconciler.reconcile_one(identity, provider)

        reconciler.on_restore_failed.assert_awaited_once_with(identity, provider)

    @pytest.mark.asyncio
    async def test_refused_payload_without_handler_is_tombstoned(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test tombstoning a refused payload when no handler is set."""
        provider.restore_result = False
        identity = linked_identity()

        await reconciler.reconcile_one(identity, "weixin")

        assert identity.auth_data == {"weixin": None}

    @pytest.mark.asyncio
    async def test_failed_unlink_is_not_raised(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test that an unlink failure is logged, not raised."""
        provider.restore_result = False

        async def unlink(identity: Identity, refused: FakeProvider) -> None:
            raise RequestError(500, 1, "boom")

        reconciler.on_restore_failed = unlink

        await reconciler.reconcile_one(linked_identity(), "weixin")


class TestRestoreSync:
    """Tests for the synchronous reconciliation path."""

    def test_refused_payload_is_tombstoned_without_loop(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test the sync path with no running event loop."""
        provider.restore_result = False

        async def unlink(identity: Identity, refused: FakeProvider) -> None:
            raise AssertionError("no event loop is running")

        reconciler.on_restore_failed = unlink
        identity = linked_identity()

        reconciler.restore_all(identity)

        assert identity.auth_data == {"weixin": None}
        assert identity.is_linked("weixin") is False

    @pytest.mark.asyncio
    async def test_refused_payload_schedules_unlink_with_loop(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test that the sync path schedules a single background unlink."""
        provider.restore_result = False
        unlinked: list[str] = []

        async def unlink(identity: Identity, refused: FakeProvider) -> None:
            unlinked.append(refused.auth_type)

        reconciler.on_restore_failed = unlink
        identity = linked_identity()

        reconciler.restore_one(identity, "weixin")
        # A second restore before the unlink lands must not schedule another
        reconciler.restore_one(identity, "weixin")
        await reconciler.wait_pending()

        assert unlinked == ["weixin"]


class TestCleanupAndTeardown:
    """Tests for tombstone cleanup and provider deauthentication."""

    def test_cleanup_removes_only_none_payloads(self, reconciler: AuthDataReconciler) -> None:
        """Test that cleanup drops tombstones and keeps empty links."""
        identity = Identity(
            auth_data={"weixin": None, "weibo": {}, "qq": {"openid": "1"}},
            is_current=True,
        )

        reconciler.cleanup_tombstones(identity)

        assert identity.auth_data == {"weibo": {}, "qq": {"openid": "1"}}

    def test_cleanup_skips_non_current(self, reconciler: AuthDataReconciler) -> None:
        """Test that cleanup ignores identities that are not current."""
        identity = Identity(auth_data={"weixin": None})

        reconciler.cleanup_tombstones(identity)

        assert identity.auth_data == {"weixin": None}

    def test_deauthenticate_all(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test deauthenticating every linked provider."""
        reconciler.deauthenticate_all(linked_identity())

        assert provider.deauthenticated == 1

    def test_deauthenticate_skips_non_current(
        self, reconciler: AuthDataReconciler, provider: FakeProvider
    ) -> None:
        """Test that deauthentication ignores identities that are not current."""
        reconciler.deauthenticate_all(linked_identity(is_current=False))

        assert provider.deauthenticated == 0
