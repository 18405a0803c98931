from hbcr.application.services.build_service import BuildService
from hbcr.application.services.table_cache import TableCache
from hbcr.application.services.table_loader import LevelingTableLoader
from hbcr.infrastructure.table_provider_factory import create_table_client


def create_table_loader(cache: TableCache | None = None) -> LevelingTableLoader:
    return LevelingTableLoader(create_table_client(), cache=cache)


def create_build_service(cache: TableCache | None = None) -> BuildService:
    return BuildService(create_table_loader(cache))
