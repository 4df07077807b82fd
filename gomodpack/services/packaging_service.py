"""
Packaging service for gomodpack.

Runs one packaging pass for the module in the current directory:
resolve module identity, open its repository, derive the version, write
the version's .info/.mod/.zip into the module proxy folder and finally
add the version to the list file.

The list file is updated last, so an interrupted run can leave orphaned
artifacts but never lists a version whose files are missing.
"""

from typing import Any, Dict, Iterable, List, Optional
import logging

from ..config import get_cache_base_dir, get_timeout
from ..domain import ModuleIdentity, PackResult
from ..infra.git_client import GitClient, VCSProcess
from ..infra.go_client import GoClient
from ..proxy_folder import ModuleProxyFolder
from ..resolver import GitRepository, open_repository

logger = logging.getLogger(__name__)


class PackagingService:
    """
    Service for packaging modules into a module proxy folder.

    Example:
        service = PackagingService(config=load_config())
        result = service.pack(force=False)
        print(result.version, result.skipped)
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        git_client: Optional[VCSProcess] = None,
        go_client: Optional[GoClient] = None,
    ):
        """
        Initialize PackagingService.

        Args:
            config: Configuration dict (default: empty, i.e. built-in defaults)
            git_client: VCS process implementation (default: GitClient from config)
            go_client: Go toolchain client (default: GoClient from config)
        """
        self.config = config or {}
        self.git_client = git_client or GitClient(
            executable=self.config.get('git', {}).get('executable') or 'git',
            timeout=get_timeout(self.config, 'git'),
        )
        self.go_client = go_client or GoClient(
            executable=self.config.get('go', {}).get('executable') or 'go',
            timeout=get_timeout(self.config, 'go'),
        )

    def module_identity(self, module_dir: Optional[str] = None) -> ModuleIdentity:
        """Module to package, as listed by the go command."""
        return self.go_client.list_module(cwd=module_dir)

    def open_repository(self, module: ModuleIdentity) -> GitRepository:
        return open_repository(module.dir, client=self.git_client)

    def open_folder(self, module_path: str, cache_dir: Optional[str] = None) -> ModuleProxyFolder:
        base_dir = cache_dir or get_cache_base_dir(self.config)
        return ModuleProxyFolder.open(module_path, base_folder=base_dir, go_client=self.go_client)

    def resolve_version(self, module_dir: Optional[str] = None) -> str:
        """Version that ``pack`` would publish, without writing anything."""
        module = self.module_identity(module_dir)
        return self.open_repository(module).resolve()

    def pack(
        self,
        module_dir: Optional[str] = None,
        cache_dir: Optional[str] = None,
        force: bool = False,
    ) -> PackResult:
        """
        Package the current module version into the proxy folder.

        Args:
            module_dir: Directory to run ``go list -m`` in (default: cwd)
            cache_dir: Module proxy base folder (default: config, then go env)
            force: Re-pack even if the version is already listed

        Returns:
            PackResult describing what happened
        """
        module = self.module_identity(module_dir)
        logger.info(f"module path [{module.path}]")

        repo = self.open_repository(module)
        version = repo.resolve()
        logger.info(f"version: {version}")

        folder = self.open_folder(module.path, cache_dir)
        logger.info(f"module proxy folder: {folder.folder_path}")

        if folder.contains_version(version):
            if not force:
                logger.info(f"version existed in version list: {version}. Stopped.")
                return PackResult(
                    module_path=module.path,
                    version=version,
                    folder=str(folder.folder_path),
                    skipped=True,
                )
            logger.warning(f"version existed ({version}). proceed packaging as force mode is enabled.")

        commit_time = repo.commit_time()
        logger.info(f"commit at {commit_time.isoformat()}")
        logger.info(f"source go.mod: {module.go_mod}")

        with folder.stage_version(version) as pending:
            pending.write_info(commit_time)
            pending.copy_definition(module.go_mod)
            with pending.open_archive() as fp:
                repo.zip(fp, module.path, version)

        folder.add_version(version)
        logger.info("Complete.")

        return PackResult(
            module_path=module.path,
            version=version,
            folder=str(folder.folder_path),
            forced=force,
            commit_time=commit_time,
        )

    def import_versions(
        self,
        versions: Iterable[str],
        module_dir: Optional[str] = None,
        cache_dir: Optional[str] = None,
    ) -> List[str]:
        """Merge version strings into the current module's list file."""
        module = self.module_identity(module_dir)
        folder = self.open_folder(module.path, cache_dir)
        added = folder.import_versions(versions)
        logger.info(f"imported {len(added)} version(s) into {folder.list_file_path}")
        return added
