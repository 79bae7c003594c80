from tortoise import BaseDBAsyncClient


async def upgrade(db: BaseDBAsyncClient) -> str:
    return """
        CREATE TABLE IF NOT EXISTS "documents" (
            "id" UUID NOT NULL PRIMARY KEY,
            "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
            "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
            "user_id" VARCHAR(255),
            "title" VARCHAR(255) NOT NULL,
            "original_filename" VARCHAR(255) NOT NULL,
            "file_type" VARCHAR(10) NOT NULL DEFAULT 'other',
            "file_size" BIGINT NOT NULL DEFAULT 0,
            "file_path" VARCHAR(512) NOT NULL,
            "processing_status" VARCHAR(20) NOT NULL DEFAULT 'pending',
            "processing_errors" TEXT,
            "original_text" TEXT,
            "simplified_summary" TEXT,
            "key_points" JSONB,
            "legal_terms" JSONB,
            "warnings" JSONB
        );
        CREATE INDEX IF NOT EXISTS "idx_documents_user_id" ON "documents" ("user_id");
        CREATE INDEX IF NOT EXISTS "idx_documents_status" ON "documents" ("processing_status");
        COMMENT ON COLUMN "documents"."processing_status" IS 'Processing status: pending, processing, completed, or error';
        COMMENT ON COLUMN "documents"."processing_errors" IS 'Error message from the last failed processing run';
        COMMENT ON TABLE "documents" IS 'Uploaded documents and their analysis';
        CREATE TABLE IF NOT EXISTS "chat_sessions" (
            "id" UUID NOT NULL PRIMARY KEY,
            "user_id" VARCHAR(255) NOT NULL,
            "title" VARCHAR(255) NOT NULL,
            "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
            "document_id" UUID NOT NULL REFERENCES "documents" ("id") ON DELETE CASCADE
        );
        CREATE INDEX IF NOT EXISTS "idx_chat_sessions_user_id" ON "chat_sessions" ("user_id");
        CREATE TABLE IF NOT EXISTS "chat_messages" (
            "id" UUID NOT NULL PRIMARY KEY,
            "role" VARCHAR(20) NOT NULL,
            "content" TEXT NOT NULL,
            "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
            "chat_session_id" UUID NOT NULL REFERENCES "chat_sessions" ("id") ON DELETE CASCADE
        );
        CREATE INDEX IF NOT EXISTS "idx_chat_messages_created_at" ON "chat_messages" ("created_at");
        CREATE TABLE IF NOT EXISTS "aerich" (
            "id" SERIAL NOT NULL PRIMARY KEY,
            "version" VARCHAR(255) NOT NULL,
            "app" VARCHAR(100) NOT NULL,
            "content" JSONB NOT NULL
        );
    """


async def downgrade(db: BaseDBAsyncClient) -> str:
    return """
        DROP TABLE IF EXISTS "chat_messages";
        DROP TABLE IF EXISTS "chat_sessions";
        DROP TABLE IF EXISTS "documents";
        """
