import json

ALLOWED_TABLES = ("ads", "categories", "coupons", "plans", "messages", "special_ads")


class QueryBuilder:
    @staticmethod
    def build_insert_query(data: dict, table_name: str) -> tuple[str, list]:
        """
        Build INSERT query and values from dict.
        Does NOT execute - returns query and values for the caller to execute.

        Args:
            data: Dictionary of column names and values
            table_name: Name of the table to insert into

        Returns:
            Tuple of (query_string, values_list). The query returns the new row.

        Example:
            query, values = QueryBuilder.build_insert_query({"name": "Cars"}, "categories")
            row = await conn.fetchrow(query, *values)
        """
        # Whitelist table names
        if table_name not in ALLOWED_TABLES:
            raise ValueError(f"Invalid table: {table_name}")

        # dicts go to JSONB columns, lists stay lists for TEXT[] columns (ads.photos)
        processed_data = {}
        for key, value in data.items():
            if isinstance(value, dict):
                processed_data[key] = json.dumps(value)
            else:
                processed_data[key] = value

        columns = ", ".join(processed_data.keys())
        placeholders = ", ".join([f"${i+1}" for i in range(len(processed_data))])
        values = list(processed_data.values())

        query = f"INSERT INTO {table_name} ({columns}) VALUES ({placeholders}) RETURNING *"

        return query, values

    @staticmethod
    def build_update_query(
        data: dict,
        table_name: str,
        where_column: str,
        where_value,
    ) -> tuple[str, list]:
        """
        Build UPDATE query and values from dict.
        Does NOT execute - returns query and values for the caller to execute.

        Example:
            query, values = QueryBuilder.build_update_query(
                {"active": False}, "coupons", "id", coupon_id
            )
            row = await conn.fetchrow(query, *values)
        """
        if table_name not in ALLOWED_TABLES:
            raise ValueError(f"Invalid table: {table_name}")
        if not data:
            raise ValueError("Nothing to update")

        set_clauses = []
        values = []
        for i, (key, value) in enumerate(data.items()):
            if isinstance(value, dict):
                value = json.dumps(value)
            set_clauses.append(f"{key} = ${i+1}")
            values.append(value)
        set_clauses.append("updated_at = NOW()")
        set_statement = ", ".join(set_clauses)
        values.append(where_value)  # WHERE value is the last parameter
        query = (
            f"UPDATE {table_name} SET {set_statement} "
            f"WHERE {where_column} = ${len(values)} RETURNING *"
        )

        return query, values
