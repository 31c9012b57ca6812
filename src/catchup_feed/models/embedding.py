"""DDL for the article_embeddings table.

The vector column type differs per backend (pgvector ``vector`` on Postgres,
float32 BLOB read by sqlite-vec on SQLite), so the table is created from raw
DDL instead of the declarative models.
"""

from sqlalchemy import DDL

CREATE_SQLITE_ARTICLE_EMBEDDINGS = DDL("""
CREATE TABLE IF NOT EXISTS article_embeddings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    article_id INTEGER NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
    embedding_type TEXT NOT NULL,
    provider TEXT NOT NULL,
    model TEXT NOT NULL,
    dimension INTEGER NOT NULL,
    embedding BLOB NOT NULL,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (article_id, embedding_type, provider, model)
)
""")

CREATE_SQLITE_ARTICLE_EMBEDDINGS_TYPE_INDEX = DDL("""
CREATE INDEX IF NOT EXISTS idx_article_embeddings_type_dimension
ON article_embeddings (embedding_type, dimension)
""")

CREATE_POSTGRES_VECTOR_EXTENSION = DDL("CREATE EXTENSION IF NOT EXISTS vector")

CREATE_POSTGRES_ARTICLE_EMBEDDINGS = DDL("""
CREATE TABLE IF NOT EXISTS article_embeddings (
    id BIGSERIAL PRIMARY KEY,
    article_id BIGINT NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
    embedding_type TEXT NOT NULL,
    provider TEXT NOT NULL,
    model TEXT NOT NULL,
    dimension INTEGER NOT NULL,
    embedding vector NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (article_id, embedding_type, provider, model)
)
""")

CREATE_POSTGRES_ARTICLE_EMBEDDINGS_TYPE_INDEX = DDL("""
CREATE INDEX IF NOT EXISTS idx_article_embeddings_type_dimension
ON article_embeddings (embedding_type, dimension)
""")

DROP_ARTICLE_EMBEDDINGS = DDL("DROP TABLE IF EXISTS article_embeddings")
