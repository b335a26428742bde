import logging

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "0.1.0"

DDL_STATEMENTS = [
    # ---- SENSEI_META ----
    """
    CREATE TABLE SENSEI_META (
        meta_key   VARCHAR2(100)  PRIMARY KEY,
        meta_value VARCHAR2(4000) NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # ---- SENSEI_DOCUMENTS ----
    """
    CREATE TABLE SENSEI_DOCUMENTS (
        collection VARCHAR2(100)  NOT NULL,
        doc_key    VARCHAR2(400)  NOT NULL,
        doc_data   CLOB           CHECK (doc_data IS JSON),
        created_at TIMESTAMP      DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP      DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT PK_SENSEI_DOCUMENTS PRIMARY KEY (collection, doc_key)
    )
    """,
]

INDEX_STATEMENTS = [
    "CREATE INDEX IDX_DOCUMENTS_COLLECTION ON SENSEI_DOCUMENTS(collection, updated_at)",
]

ALL_TABLES = [
    "SENSEI_META",
    "SENSEI_DOCUMENTS",
]


async def init_schema(pool) -> dict:
    """Create all tables and indexes idempotently. Returns status dict."""
    tables_created = []
    indexes_created = []
    errors = []

    async with pool.acquire() as conn:
        for ddl in DDL_STATEMENTS:
            table_name = _extract_table_name(ddl)
            try:
                cursor = conn.cursor()
                await cursor.execute(ddl)
                tables_created.append(table_name)
                logger.info("Created table %s", table_name)
            except Exception as e:
                if "ORA-00955" in str(e):
                    logger.debug("Table %s already exists", table_name)
                else:
                    logger.error("Error creating table %s: %s", table_name, e)
                    errors.append({"table": table_name, "error": str(e)})

        for idx_ddl in INDEX_STATEMENTS:
            idx_name = _extract_index_name(idx_ddl)
            try:
                cursor = conn.cursor()
                await cursor.execute(idx_ddl)
                indexes_created.append(idx_name)
                logger.info("Created index %s", idx_name)
            except Exception as e:
                if "ORA-00955" in str(e) or "ORA-01408" in str(e):
                    logger.debug("Index %s already exists", idx_name)
                else:
                    logger.error("Error creating index %s: %s", idx_name, e)
                    errors.append({"index": idx_name, "error": str(e)})

        await set_schema_version(pool, SCHEMA_VERSION)

        await conn.commit()

    return {
        "tables_created": tables_created,
        "indexes_created": indexes_created,
        "errors": errors,
    }


async def check_tables_exist(pool) -> dict[str, bool]:
    """Check which tables exist."""
    result = {}
    async with pool.acquire() as conn:
        cursor = conn.cursor()
        await cursor.execute(
            "SELECT table_name FROM user_tables WHERE table_name LIKE 'SENSEI_%'"
        )
        rows = await cursor.fetchall()
        existing = {row[0] for row in rows}
        for table in ALL_TABLES:
            result[table] = table in existing
    return result


async def get_schema_version(pool) -> str:
    """Get current schema version from SENSEI_META."""
    try:
        async with pool.acquire() as conn:
            cursor = conn.cursor()
            await cursor.execute(
                "SELECT meta_value FROM SENSEI_META WHERE meta_key = 'schema_version'"
            )
            row = await cursor.fetchone()
            return row[0] if row else "unknown"
    except Exception as e:
        logger.debug("Schema version lookup failed: %s", e)
        return "unknown"


async def set_schema_version(pool, version: str):
    """Set schema version in SENSEI_META."""
    async with pool.acquire() as conn:
        cursor = conn.cursor()
        await cursor.execute(
            """
            MERGE INTO SENSEI_META m
            USING (SELECT 'schema_version' AS meta_key FROM DUAL) s
            ON (m.meta_key = s.meta_key)
            WHEN MATCHED THEN
                UPDATE SET meta_value = :val, updated_at = CURRENT_TIMESTAMP
            WHEN NOT MATCHED THEN
                INSERT (meta_key, meta_value) VALUES ('schema_version', :val)
            """,
            {"val": version},
        )
        await conn.commit()


def _extract_table_name(ddl: str) -> str:
    """Extract table name from CREATE TABLE statement."""
    parts = ddl.strip().split()
    for i, p in enumerate(parts):
        if p.upper() == "TABLE" and i + 1 < len(parts):
            return parts[i + 1].strip("(").upper()
    return "UNKNOWN"


def _extract_index_name(ddl: str) -> str:
    """Extract index name from CREATE INDEX statement."""
    parts = ddl.strip().split()
    for i, p in enumerate(parts):
        if p.upper() == "INDEX" and i + 1 < len(parts):
            name = parts[i + 1].strip().upper()
            if name == "IF":
                continue
            return name
    return "UNKNOWN"
