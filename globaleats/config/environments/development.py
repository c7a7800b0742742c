from ..settings import Settings

class DevelopmentSettings(Settings):
    debug: bool = True
    database_url: str = "duckdb://./data/globaleats_dev.duckdb"
    log_level: str = "DEBUG"
