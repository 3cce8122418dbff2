"""
DDL for the hosted backend.

The production database is provisioned by the hosting provider; this module
keeps the tables, the two counter RPCs and the category change trigger the
API relies on, so a local database can be brought up with:

    python -m classifieds.database.schema
"""
import asyncio

import asyncpg  # type: ignore


def create_users_table_sql():
    """Return SQL statement to create the 'users' table."""

    return """
    CREATE TABLE IF NOT EXISTS users (
      id VARCHAR(128) PRIMARY KEY,
      email VARCHAR(255) UNIQUE,
      name VARCHAR(200),
      phone VARCHAR(50),
      avatar_url VARCHAR(500),
      role VARCHAR(10) NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """


def create_categories_table_sql():
    """Return SQL statement to create the 'categories' table and its notify trigger."""

    return """
    CREATE TABLE IF NOT EXISTS categories (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      name VARCHAR(100) NOT NULL,
      slug VARCHAR(120) NOT NULL UNIQUE,
      icon VARCHAR(20) NOT NULL DEFAULT '',
      description VARCHAR(500),
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE OR REPLACE FUNCTION notify_categories_changed() RETURNS trigger AS $$
    BEGIN
      PERFORM pg_notify('categories_changed', TG_OP);
      RETURN NULL;
    END;
    $$ LANGUAGE plpgsql;

    DROP TRIGGER IF EXISTS categories_changed ON categories;
    CREATE TRIGGER categories_changed
      AFTER INSERT OR UPDATE OR DELETE ON categories
      FOR EACH STATEMENT EXECUTE FUNCTION notify_categories_changed();
    """


def create_plans_table_sql():
    """Return SQL statement to create the 'plans' table."""

    return """
    CREATE TABLE IF NOT EXISTS plans (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      name VARCHAR(100) NOT NULL,
      slug VARCHAR(120) NOT NULL UNIQUE,
      description TEXT NOT NULL DEFAULT '',
      price NUMERIC(10, 2) NOT NULL CHECK (price >= 0),
      duration_days INTEGER NOT NULL CHECK (duration_days > 0),
      photo_limit INTEGER NOT NULL DEFAULT 0,
      direct_contact BOOLEAN NOT NULL DEFAULT FALSE,
      featured BOOLEAN NOT NULL DEFAULT FALSE,
      active BOOLEAN NOT NULL DEFAULT TRUE,
      checkout_url VARCHAR(1000),
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """


def create_ads_table_sql():
    """Return SQL statement to create the 'ads' table and its counter RPCs."""

    return """
    CREATE TABLE IF NOT EXISTS ads (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      user_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      category_id UUID REFERENCES categories(id) ON DELETE SET NULL,
      plan_id UUID REFERENCES plans(id) ON DELETE SET NULL,
      type VARCHAR(10) NOT NULL DEFAULT 'grid' CHECK (type IN ('grid', 'header', 'footer')),
      ad_type VARCHAR(10) CHECK (ad_type IN ('sale', 'rent')),
      title VARCHAR(200) NOT NULL,
      description TEXT NOT NULL DEFAULT '',
      price NUMERIC(12, 2) NOT NULL DEFAULT 0 CHECK (price >= 0),
      photos TEXT[] NOT NULL DEFAULT '{}',
      location VARCHAR(200) NOT NULL DEFAULT '',
      contact_info JSONB NOT NULL DEFAULT '{}'::jsonb,
      start_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      end_date TIMESTAMPTZ,
      status VARCHAR(10) NOT NULL DEFAULT 'pending'
        CHECK (status IN ('active', 'pending', 'expired', 'rejected', 'paused')),
      views INTEGER NOT NULL DEFAULT 0,
      exposures INTEGER NOT NULL DEFAULT 0,
      max_exposures INTEGER NOT NULL DEFAULT 0,
      admin_approved BOOLEAN NOT NULL DEFAULT FALSE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE INDEX IF NOT EXISTS idx_ads_status_type ON ads(status, type);
    CREATE INDEX IF NOT EXISTS idx_ads_user ON ads(user_id);

    CREATE OR REPLACE FUNCTION increment_exposures(ad_id UUID) RETURNS VOID AS $$
      UPDATE ads SET exposures = exposures + 1
      WHERE id = ad_id AND exposures < max_exposures;
    $$ LANGUAGE sql;

    CREATE OR REPLACE FUNCTION increment_ad_view(ad_id UUID) RETURNS VOID AS $$
      UPDATE ads SET views = views + 1 WHERE id = ad_id;
    $$ LANGUAGE sql;
    """


def create_favorites_table_sql():
    """Return SQL statement to create the 'favorites' table."""

    return """
    CREATE TABLE IF NOT EXISTS favorites (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      user_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      ad_id UUID NOT NULL REFERENCES ads(id) ON DELETE CASCADE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      UNIQUE (user_id, ad_id)
    );

    CREATE INDEX IF NOT EXISTS idx_favorites_ad ON favorites(ad_id);
    """


def create_messages_table_sql():
    """Return SQL statement to create the 'messages' table."""

    return """
    CREATE TABLE IF NOT EXISTS messages (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      sender_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      receiver_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      ad_id UUID REFERENCES ads(id) ON DELETE SET NULL,
      message TEXT NOT NULL,
      read BOOLEAN NOT NULL DEFAULT FALSE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """


def create_coupons_table_sql():
    """Return SQL statement to create the 'coupons' table."""

    return """
    CREATE TABLE IF NOT EXISTS coupons (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      code VARCHAR(32) NOT NULL,
      description TEXT,
      discount_percent NUMERIC(5, 2) NOT NULL
        CHECK (discount_percent > 0 AND discount_percent <= 100),
      max_uses INTEGER CHECK (max_uses >= 0),
      usage_count INTEGER NOT NULL DEFAULT 0,
      expires_at TIMESTAMPTZ,
      active BOOLEAN NOT NULL DEFAULT TRUE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE UNIQUE INDEX IF NOT EXISTS coupons_code_unique_idx ON coupons (UPPER(code));
    """


def create_special_ads_table_sql():
    """Return SQL statement to create the 'special_ads' table."""

    return """
    CREATE TABLE IF NOT EXISTS special_ads (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      title VARCHAR(200) NOT NULL,
      description TEXT NOT NULL DEFAULT '',
      price NUMERIC(10, 2) NOT NULL DEFAULT 0 CHECK (price >= 0),
      image_url VARCHAR(1000),
      large_image_url VARCHAR(1000),
      status VARCHAR(10) NOT NULL DEFAULT 'pending'
        CHECK (status IN ('active', 'inactive', 'pending')),
      expires_at TIMESTAMPTZ,
      created_by VARCHAR(128),
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """


SCHEMA_STEPS = [
    ("users", create_users_table_sql),
    ("categories", create_categories_table_sql),
    ("plans", create_plans_table_sql),
    ("ads", create_ads_table_sql),
    ("favorites", create_favorites_table_sql),
    ("messages", create_messages_table_sql),
    ("coupons", create_coupons_table_sql),
    ("special_ads", create_special_ads_table_sql),
]


async def create_schema(conn: asyncpg.Connection) -> None:
    for table_name, build_sql in SCHEMA_STEPS:
        await conn.execute(build_sql())
        print(f"✅ '{table_name}' table ready.")


def main():
    """Create every table the API reads and writes."""
    from classifieds.database.connection import create_listener_connection

    async def run():
        conn = await create_listener_connection()
        try:
            await create_schema(conn)
        except Exception as e:
            print(f"❌ Failed to create schema: {e}")
        finally:
            await conn.close()

    asyncio.run(run())


if __name__ == "__main__":
    main()
