from typing import Iterable

from psycopg import errors as pg_errors

from region_survey.services.errors import DuplicateConflictError

_SURVEY_COLUMNS = """
    id::text AS id,
    user_name,
    cohort,
    COALESCE(selected_regions, ARRAY[]::text[]) AS selected_regions,
    option_type,
    created_at
"""


def _normalize_survey_row(row: dict | None) -> dict | None:
    if row is None:
        return None
    payload = dict(row)
    payload["selected_regions"] = list(payload.get("selected_regions") or [])
    return payload


class PostgresRepository:
    def __init__(self, conn):
        self.conn = conn

    def rollback(self) -> None:
        self.conn.rollback()

    # surveys

    def find_surveys(self, *, user_name: str | None = None, cohort: str | None = None) -> list[dict]:
        clauses: list[str] = []
        params: list[object] = []
        if user_name is not None:
            clauses.append("user_name = %s")
            params.append(user_name)
        if cohort is not None:
            clauses.append("cohort = %s")
            params.append(cohort)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self.conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {_SURVEY_COLUMNS}
                FROM region_demand_surveys
                {where}
                ORDER BY created_at DESC, id
                """,
                params,
            )
            rows = cur.fetchall() or []
        return [_normalize_survey_row(row) for row in rows]

    def list_all_surveys(self) -> list[dict]:
        return self.find_surveys()

    def insert_survey(self, survey: dict) -> dict:
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO region_demand_surveys (user_name, cohort, selected_regions, option_type)
                    VALUES (%(user_name)s, %(cohort)s, %(selected_regions)s, %(option_type)s)
                    RETURNING {_SURVEY_COLUMNS}
                    """,
                    {
                        "user_name": survey["user_name"],
                        "cohort": survey["cohort"],
                        "selected_regions": list(survey["selected_regions"]),
                        "option_type": survey.get("option_type"),
                    },
                )
                row = cur.fetchone()
        except pg_errors.UniqueViolation as exc:
            self.conn.rollback()
            raise DuplicateConflictError(
                f"survey already exists for user_name={survey['user_name']} cohort={survey['cohort']}"
            ) from exc
        self.conn.commit()
        return _normalize_survey_row(row)

    def update_survey_regions(
        self,
        survey_id: str,
        selected_regions: list[str],
        option_type: int | None = None,
    ) -> dict | None:
        # option_type=None leaves the stored option untouched.
        with self.conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE region_demand_surveys
                SET selected_regions = %s,
                    option_type = COALESCE(%s::smallint, option_type)
                WHERE id::text = %s
                RETURNING {_SURVEY_COLUMNS}
                """,
                (list(selected_regions), option_type, survey_id),
            )
            row = cur.fetchone()
        self.conn.commit()
        return _normalize_survey_row(row)

    def delete_surveys(self, survey_ids: Iterable[str]) -> int:
        ids = [str(x) for x in survey_ids]
        if not ids:
            return 0
        with self.conn.cursor() as cur:
            cur.execute(
                "DELETE FROM region_demand_surveys WHERE id::text = ANY(%s) RETURNING id",
                (ids,),
            )
            deleted = len(cur.fetchall() or [])
        self.conn.commit()
        return deleted

    # region catalog

    def list_cities(self) -> list[dict]:
        with self.conn.cursor() as cur:
            cur.execute("SELECT city_id, city_name FROM cities ORDER BY city_name")
            return [dict(row) for row in (cur.fetchall() or [])]

    def list_districts(self, city_id: int) -> list[dict]:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT district_id, district_name, city_id
                FROM districts
                WHERE city_id = %s
                ORDER BY district_name
                """,
                (city_id,),
            )
            return [dict(row) for row in (cur.fetchall() or [])]

    def list_neighborhoods(self, district_id: int) -> list[dict]:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT neighborhood_id, neighborhood_name, district_id, last_crawled_at
                FROM neighborhoods
                WHERE district_id = %s
                ORDER BY neighborhood_name
                """,
                (district_id,),
            )
            return [dict(row) for row in (cur.fetchall() or [])]

    def list_all_server_regions(self) -> list[dict]:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT
                    c.city_name,
                    d.district_name,
                    n.neighborhood_name,
                    n.last_crawled_at
                FROM neighborhoods n
                JOIN districts d ON d.district_id = n.district_id
                JOIN cities c ON c.city_id = d.city_id
                """
            )
            return [dict(row) for row in (cur.fetchall() or [])]

    # crawl status

    def list_crawl_statuses(self) -> list[dict]:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id::text AS id, region_name, is_crawled, crawled_at, created_at
                FROM crawled_regions
                ORDER BY region_name
                """
            )
            return [dict(row) for row in (cur.fetchall() or [])]

    def get_crawl_status(self, region_name: str) -> dict | None:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id::text AS id, region_name, is_crawled, crawled_at, created_at
                FROM crawled_regions
                WHERE region_name = %s
                """,
                (region_name,),
            )
            row = cur.fetchone()
        return dict(row) if row else None

    def set_crawl_status(self, region_name: str, is_crawled: bool) -> dict:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO crawled_regions (region_name, is_crawled, crawled_at)
                VALUES (%(region_name)s, %(is_crawled)s, CASE WHEN %(is_crawled)s THEN NOW() ELSE NULL END)
                ON CONFLICT (region_name) DO UPDATE
                SET is_crawled = EXCLUDED.is_crawled,
                    crawled_at = EXCLUDED.crawled_at
                RETURNING id::text AS id, region_name, is_crawled, crawled_at, created_at
                """,
                {"region_name": region_name, "is_crawled": is_crawled},
            )
            row = cur.fetchone()
        self.conn.commit()
        return dict(row)

    # cohort archive

    def list_archived_cohorts(self) -> list[str]:
        with self.conn.cursor() as cur:
            cur.execute("SELECT cohort FROM archived_cohorts ORDER BY archived_at DESC")
            return [row["cohort"] for row in (cur.fetchall() or [])]

    def archive_cohort(self, cohort: str) -> bool:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO archived_cohorts (cohort)
                VALUES (%s)
                ON CONFLICT (cohort) DO NOTHING
                RETURNING id
                """,
                (cohort,),
            )
            inserted = cur.fetchone() is not None
        self.conn.commit()
        return inserted
