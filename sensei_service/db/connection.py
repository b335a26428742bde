import logging

import oracledb

oracledb.defaults.thin_mode = True

logger = logging.getLogger(__name__)


class OracleConnectionManager:
    """Owns the async pool behind the Oracle document store.

    freepdb: plain host:port/service DSN.
    adb: full DSN descriptor, either wallet-less TLS or mTLS with a
    wallet directory passed as ``config_dir``.
    """

    def __init__(self, settings):
        self.settings = settings
        self.pool: oracledb.AsyncConnectionPool | None = None

    def pool_params(self) -> dict:
        params = {
            "user": self.settings.oracle_user,
            "password": self.settings.oracle_password,
            "dsn": self.settings.get_dsn(),
            "min": self.settings.oracle_pool_min,
            "max": self.settings.oracle_pool_max,
        }
        if self.settings.uses_wallet:
            params["config_dir"] = self.settings.oracle_wallet_path
            params["ssl_server_dn_match"] = True
            if self.settings.oracle_wallet_password:
                params["wallet_password"] = self.settings.oracle_wallet_password
        return params

    async def create_pool(self) -> oracledb.AsyncConnectionPool:
        params = self.pool_params()
        if self.settings.uses_wallet:
            logger.info("ADB connection mode: mTLS (wallet at %s)", self.settings.oracle_wallet_path)
        elif self.settings.is_adb:
            logger.info("ADB connection mode: wallet-less TLS")
        else:
            logger.info("FreePDB connection: %s", self.settings.get_dsn())

        self.pool = oracledb.create_pool_async(**params)
        return self.pool

    async def close_pool(self):
        if self.pool:
            await self.pool.close()
            self.pool = None
