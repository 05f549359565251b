"""
Database utilities for storing WAF templates and their version history.
"""
import sqlite3
import json
import logging
import uuid
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone

from waf_manager.exceptions.custom_exceptions import TemplateStoreError, TemplateNotFoundError
from waf_manager.models.rules import WAFTemplate, TemplateVersion

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TemplateDatabase:
    """SQLite database for WAF templates."""

    def __init__(self, db_path: str = "waf_templates.db"):
        """Initialize the database."""
        self.db_path = db_path
        self.init_database()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_database(self):
        """Initialize the database schema."""
        conn = self._connect()
        cursor = conn.cursor()

        # Create templates table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS waf_templates (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                expression TEXT NOT NULL,
                action TEXT NOT NULL,
                action_parameters TEXT,
                is_core INTEGER NOT NULL DEFAULT 0,
                is_community INTEGER NOT NULL DEFAULT 0,
                version INTEGER NOT NULL DEFAULT 1,
                display_order INTEGER NOT NULL DEFAULT 0,
                created_by TEXT,
                target_countries TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')

        # Create version history table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS waf_template_versions (
                id TEXT PRIMARY KEY,
                template_id TEXT NOT NULL,
                version INTEGER NOT NULL,
                name TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                expression TEXT NOT NULL,
                action TEXT NOT NULL,
                modified_at TEXT NOT NULL,
                modified_by TEXT,
                UNIQUE (template_id, version)
            )
        ''')

        conn.commit()
        conn.close()

    @staticmethod
    def _row_to_template(row: sqlite3.Row) -> WAFTemplate:
        data = dict(row)
        data["action_parameters"] = json.loads(data["action_parameters"]) if data["action_parameters"] else None
        data["target_countries"] = json.loads(data["target_countries"] or "[]")
        data["is_core"] = bool(data["is_core"])
        data["is_community"] = bool(data["is_community"])
        return WAFTemplate(**data)

    def _query_templates(self, where: str = "", params: tuple = ()) -> List[WAFTemplate]:
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM waf_templates {where} ORDER BY display_order ASC", params)
            return [self._row_to_template(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def fetch_core_templates(self) -> List[WAFTemplate]:
        """
        Get the core templates that make up the canonical rule set.

        Returns:
            Core templates ordered by display order
        """
        return self._query_templates("WHERE is_core = 1")

    def list_templates(self, scope: str = "core", created_by: Optional[str] = None) -> List[WAFTemplate]:
        """
        List templates for one of the dashboard tabs.

        Args:
            scope: core, community or mine
            created_by: Owner email, required for the mine scope

        Returns:
            Templates ordered by display order
        """
        if scope == "core":
            return self._query_templates("WHERE is_core = 1")
        if scope == "community":
            return self._query_templates("WHERE is_community = 1 AND is_core = 0")
        if scope == "mine":
            if not created_by:
                raise ValueError("created_by is required for scope 'mine'")
            return self._query_templates("WHERE created_by = ?", (created_by,))
        raise ValueError(f"Unsupported template scope: {scope}")

    def get_template(self, template_id: str) -> WAFTemplate:
        templates = self._query_templates("WHERE id = ?", (template_id,))
        if not templates:
            raise TemplateNotFoundError(template_id)
        return templates[0]

    def create_template(self, data: Dict[str, Any]) -> WAFTemplate:
        """
        Insert a new template at version 1.

        Args:
            data: Template fields; display_order defaults to the end of the list

        Returns:
            The stored template
        """
        template_id = str(uuid.uuid4())
        now = _now()
        conn = self._connect()
        try:
            cursor = conn.cursor()
            display_order = data.get("display_order")
            if display_order is None:
                cursor.execute("SELECT COALESCE(MAX(display_order), 0) + 1 FROM waf_templates")
                display_order = cursor.fetchone()[0]

            cursor.execute('''
                INSERT INTO waf_templates
                (id, name, description, expression, action, action_parameters, is_core,
                 is_community, version, display_order, created_by, target_countries,
                 created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?, ?, ?)
            ''', (
                template_id,
                data["name"],
                data.get("description") or "",
                data["expression"],
                data["action"],
                json.dumps(data["action_parameters"]) if data.get("action_parameters") else None,
                int(bool(data.get("is_core"))),
                int(bool(data.get("is_community"))),
                display_order,
                data.get("created_by"),
                json.dumps(data.get("target_countries") or []),
                now,
                now,
            ))
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error creating template: {str(e)}")
            raise TemplateStoreError(f"Failed to create template: {str(e)}") from e
        finally:
            conn.close()

        logger.info(f"Created template {template_id} ({data['name']})")
        return self.get_template(template_id)

    def update_template(self, template_id: str, changes: Dict[str, Any],
                        modified_by: Optional[str] = None) -> WAFTemplate:
        """
        Update a template. Core templates keep a snapshot of the previous
        version and get their version number bumped.

        Args:
            template_id: Template to update
            changes: Fields to change
            modified_by: Who made the change, recorded in the version history

        Returns:
            The updated template
        """
        current = self.get_template(template_id)
        columns = {k: v for k, v in changes.items() if k in (
            "name", "description", "expression", "action", "action_parameters",
            "display_order", "target_countries", "is_community",
        )}
        if "action_parameters" in columns:
            columns["action_parameters"] = json.dumps(columns["action_parameters"]) if columns["action_parameters"] else None
        if "target_countries" in columns:
            columns["target_countries"] = json.dumps(columns["target_countries"] or [])
        if "is_community" in columns:
            columns["is_community"] = int(bool(columns["is_community"]))

        now = _now()
        columns["updated_at"] = now
        if current.is_core:
            columns["version"] = current.version + 1

        conn = self._connect()
        try:
            cursor = conn.cursor()
            if current.is_core:
                cursor.execute('''
                    INSERT INTO waf_template_versions
                    (id, template_id, version, name, description, expression, action,
                     modified_at, modified_by)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''', (
                    str(uuid.uuid4()),
                    template_id,
                    current.version,
                    current.name,
                    current.description,
                    current.expression,
                    current.action,
                    now,
                    modified_by,
                ))
            assignments = ", ".join(f"{column} = ?" for column in columns)
            cursor.execute(
                f"UPDATE waf_templates SET {assignments} WHERE id = ?",
                (*columns.values(), template_id),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Error updating template {template_id}: {str(e)}")
            raise TemplateStoreError(f"Failed to update template: {str(e)}") from e
        finally:
            conn.close()

        logger.info(f"Updated template {template_id}")
        return self.get_template(template_id)

    def share_with_community(self, template_id: str) -> WAFTemplate:
        """Publish a template to the community tab."""
        return self.update_template(template_id, {"is_community": True})

    def delete_template(self, template_id: str) -> WAFTemplate:
        """Delete a template and its version history; returns the deleted template."""
        template = self.get_template(template_id)
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM waf_template_versions WHERE template_id = ?", (template_id,))
            cursor.execute("DELETE FROM waf_templates WHERE id = ?", (template_id,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Error deleting template {template_id}: {str(e)}")
            raise TemplateStoreError(f"Failed to delete template: {str(e)}") from e
        finally:
            conn.close()

        logger.info(f"Deleted template {template_id}")
        return template

    def list_versions(self, template_id: str) -> List[TemplateVersion]:
        """
        Get the version history of a template.

        Returns:
            Versions, newest first
        """
        self.get_template(template_id)
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT * FROM waf_template_versions
                WHERE template_id = ?
                ORDER BY version DESC
            ''', (template_id,))
            return [TemplateVersion(**dict(row)) for row in cursor.fetchall()]
        finally:
            conn.close()
