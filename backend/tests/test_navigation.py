"""
Tests for folder navigation.
"""
import pytest
from cloudfs.core.exceptions import (
    InvalidPathError,
    NotAFolderError,
    NotFoundError,
    StoreOperationError,
)
from conftest import USER_ID


@pytest.mark.asyncio
class TestNavigationService:
    """Test cases for NavigationService."""

    async def test_root_contents(self, navigation_service, driver):
        driver.seed("user-42/b.txt", "user-42/a.txt", "user-42/z/", "user-42/m/x.txt")

        contents = await navigation_service.get_folder_contents(USER_ID, None)

        assert contents.folder.is_root
        assert [obj.path for obj in contents.objects] == ["m/", "z/", "a.txt", "b.txt"]
        assert contents.breadcrumbs == []

    async def test_nested_folder(self, navigation_service, driver):
        driver.seed("user-42/a/b/", "user-42/a/b/file.txt")

        contents = await navigation_service.get_folder_contents(USER_ID, "a/b/")

        assert [obj.path for obj in contents.objects] == ["a/b/file.txt"]
        assert [(crumb.name, crumb.path.path) for crumb in contents.breadcrumbs] == [
            ("a", "a/"),
            ("b", "a/b/"),
        ]

    async def test_case_insensitive_ordering(self, navigation_service, driver):
        driver.seed("user-42/b.txt", "user-42/A.txt", "user-42/c.txt")

        contents = await navigation_service.get_folder_contents(USER_ID, "")

        assert [obj.display_name for obj in contents.objects] == ["A.txt", "b.txt", "c.txt"]

    async def test_empty_folder_with_marker(self, navigation_service, driver):
        driver.seed("user-42/empty/")

        contents = await navigation_service.get_folder_contents(USER_ID, "empty/")

        assert contents.objects == []

    async def test_empty_root(self, navigation_service):
        contents = await navigation_service.get_folder_contents(USER_ID, "/")

        assert contents.objects == []

    async def test_missing_folder(self, navigation_service):
        with pytest.raises(InvalidPathError) as exc_info:
            await navigation_service.get_folder_contents(USER_ID, "missing/")

        assert isinstance(exc_info.value.__cause__, NotFoundError)

    async def test_malformed_path(self, navigation_service, driver):
        with pytest.raises(InvalidPathError) as exc_info:
            await navigation_service.get_folder_contents(USER_ID, "a//b/")

        assert isinstance(exc_info.value.__cause__, InvalidPathError)
        assert driver.calls == []

    async def test_file_path(self, navigation_service, driver):
        driver.seed("user-42/a.txt")

        with pytest.raises(InvalidPathError) as exc_info:
            await navigation_service.get_folder_contents(USER_ID, "a.txt")

        assert isinstance(exc_info.value.__cause__, NotAFolderError)

    async def test_store_fault(self, navigation_service, driver):
        driver.unavailable = True

        with pytest.raises(InvalidPathError) as exc_info:
            await navigation_service.get_folder_contents(USER_ID, "a/")

        assert isinstance(exc_info.value.__cause__, StoreOperationError)
