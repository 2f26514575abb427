# REPO (SQL Server)
import pyodbc
from typing import Dict, List, Optional, Sequence, Tuple
from .schemas import Box, Rect, Template, TemplateField

SCHEMA_SQL = [
    """
    IF OBJECT_ID('dmTemplates', 'U') IS NULL
    CREATE TABLE dmTemplates (
        id INT IDENTITY(1,1) PRIMARY KEY,
        name NVARCHAR(255) NOT NULL,
        filename NVARCHAR(255) NOT NULL,
        file_path NVARCHAR(1024) NOT NULL,
        page_count INT NOT NULL,
        uniform_height FLOAT NULL,
        created_at DATETIME NOT NULL DEFAULT GETDATE()
    )
    """,
    """
    IF OBJECT_ID('dmBoundingBoxes', 'U') IS NULL
    CREATE TABLE dmBoundingBoxes (
        id INT IDENTITY(1,1) PRIMARY KEY,
        template_id INT NOT NULL REFERENCES dmTemplates(id) ON DELETE CASCADE,
        page INT NOT NULL,
        x FLOAT NOT NULL,
        y FLOAT NOT NULL,
        width FLOAT NOT NULL,
        height FLOAT NOT NULL
    )
    """,
    """
    IF OBJECT_ID('dmFieldMappings', 'U') IS NULL
    CREATE TABLE dmFieldMappings (
        id INT IDENTITY(1,1) PRIMARY KEY,
        template_id INT NOT NULL REFERENCES dmTemplates(id) ON DELETE CASCADE,
        field_name NVARCHAR(255) NOT NULL,
        field_label NVARCHAR(255) NOT NULL,
        field_type NVARCHAR(16) NOT NULL DEFAULT 'text',
        font_size FLOAT NOT NULL DEFAULT 10,
        CONSTRAINT uq_dmFieldMappings_name UNIQUE (template_id, field_name)
    )
    """,
    # SQL Server no admite dos caminos de cascada: el lado del box queda NO ACTION
    # y delete_template borra los vínculos explícitamente.
    """
    IF OBJECT_ID('dmFieldBoxMappings', 'U') IS NULL
    CREATE TABLE dmFieldBoxMappings (
        field_mapping_id INT NOT NULL REFERENCES dmFieldMappings(id),
        bounding_box_id INT NOT NULL REFERENCES dmBoundingBoxes(id),
        position INT NOT NULL,
        CONSTRAINT pk_dmFieldBoxMappings PRIMARY KEY (field_mapping_id, bounding_box_id),
        CONSTRAINT uq_dmFieldBoxMappings_box UNIQUE (bounding_box_id)
    )
    """,
]


class SQLTemplateRepository:
    def __init__(self, connection_string: str = None):
        self.conn_string = connection_string

    def get_connection(self):
        return pyodbc.connect(self.conn_string)

    def ensure_schema(self):
        with self.get_connection() as conn:
            cursor = conn.cursor()
            for stmt in SCHEMA_SQL:
                cursor.execute(stmt)
            conn.commit()

    # ---------- plantillas ----------
    @staticmethod
    def _row_to_template(row) -> Template:
        return Template(
            id=row.id,
            name=row.name,
            filename=row.filename,
            file_path=row.file_path,
            page_count=row.page_count,
            created_at=row.created_at,
            uniform_height=row.uniform_height,
        )

    def add_template(self, name: str, filename: str, file_path: str, page_count: int) -> Template:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO dmTemplates (name, filename, file_path, page_count)
                OUTPUT INSERTED.id
                VALUES (?, ?, ?, ?)
            """, name, filename, file_path, page_count)
            new_id = cursor.fetchone()[0]
            conn.commit()
        return self.get_template(new_id)

    def get_template(self, template_id: int) -> Optional[Template]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT id, name, filename, file_path, page_count, uniform_height, created_at
                FROM dmTemplates
                WHERE id = ?
            """, template_id)
            row = cursor.fetchone()
            return self._row_to_template(row) if row else None

    def list_templates(self) -> List[Template]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT id, name, filename, file_path, page_count, uniform_height, created_at
                FROM dmTemplates
                ORDER BY created_at DESC, id DESC
            """)
            return [self._row_to_template(row) for row in cursor.fetchall()]

    def update_template(self, template: Template) -> None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE dmTemplates SET name = ?, uniform_height = ? WHERE id = ?",
                template.name, template.uniform_height, template.id)
            conn.commit()

    def delete_template(self, template_id: int) -> None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                DELETE fbm FROM dmFieldBoxMappings fbm
                JOIN dmFieldMappings fm ON fm.id = fbm.field_mapping_id
                WHERE fm.template_id = ?
            """, template_id)
            cursor.execute("DELETE FROM dmTemplates WHERE id = ?", template_id)
            conn.commit()

    # ---------- boxes ----------
    @staticmethod
    def _row_to_box(row) -> Box:
        return Box(id=row.id, template_id=row.template_id, page=row.page,
                   x=row.x, y=row.y, width=row.width, height=row.height)

    def add_boxes(self, template_id: int, items: Sequence[Tuple[int, Rect]]) -> List[Box]:
        # una sola transacción: si falla un insert no queda ninguno
        conn = self.get_connection()
        try:
            conn.autocommit = False
            cursor = conn.cursor()
            created = []
            for page, rect in items:
                cursor.execute("""
                    INSERT INTO dmBoundingBoxes (template_id, page, x, y, width, height)
                    OUTPUT INSERTED.id
                    VALUES (?, ?, ?, ?, ?, ?)
                """, template_id, page, rect.x, rect.y, rect.width, rect.height)
                new_id = cursor.fetchone()[0]
                created.append(Box(id=new_id, template_id=template_id, page=page,
                                   x=rect.x, y=rect.y, width=rect.width, height=rect.height))
            conn.commit()
            return created
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_box(self, box_id: int) -> Optional[Box]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT id, template_id, page, x, y, width, height
                FROM dmBoundingBoxes WHERE id = ?
            """, box_id)
            row = cursor.fetchone()
            return self._row_to_box(row) if row else None

    def list_boxes(self, template_id: int, page: Optional[int] = None) -> List[Box]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            if page is None:
                cursor.execute("""
                    SELECT id, template_id, page, x, y, width, height
                    FROM dmBoundingBoxes WHERE template_id = ?
                    ORDER BY page, id
                """, template_id)
            else:
                cursor.execute("""
                    SELECT id, template_id, page, x, y, width, height
                    FROM dmBoundingBoxes WHERE template_id = ? AND page = ?
                    ORDER BY page, id
                """, template_id, page)
            return [self._row_to_box(row) for row in cursor.fetchall()]

    def update_box(self, box: Box) -> None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE dmBoundingBoxes SET x = ?, y = ?, width = ?, height = ? WHERE id = ?",
                box.x, box.y, box.width, box.height, box.id)
            conn.commit()

    def delete_box(self, box_id: int) -> None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM dmBoundingBoxes WHERE id = ?", box_id)
            conn.commit()

    # ---------- campos ----------
    def _box_ids_by_field(self, cursor, template_id: int) -> Dict[int, List[int]]:
        cursor.execute("""
            SELECT fbm.field_mapping_id, fbm.bounding_box_id
            FROM dmFieldBoxMappings fbm
            JOIN dmFieldMappings fm ON fm.id = fbm.field_mapping_id
            WHERE fm.template_id = ?
            ORDER BY fbm.field_mapping_id, fbm.position
        """, template_id)
        out: Dict[int, List[int]] = {}
        for field_id, box_id in cursor.fetchall():
            out.setdefault(field_id, []).append(box_id)
        return out

    @staticmethod
    def _row_to_field(row, box_ids: List[int]) -> TemplateField:
        return TemplateField(
            id=row.id,
            template_id=row.template_id,
            name=row.field_name,
            label=row.field_label,
            value_type=row.field_type,
            font_size=row.font_size,
            box_ids=box_ids,
        )

    def add_field(self, template_id: int, name: str, label: str, value_type: str,
                  font_size: float, box_ids: Sequence[int]) -> TemplateField:
        conn = self.get_connection()
        try:
            conn.autocommit = False
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO dmFieldMappings (template_id, field_name, field_label, field_type, font_size)
                OUTPUT INSERTED.id
                VALUES (?, ?, ?, ?, ?)
            """, template_id, name, label, value_type, font_size)
            field_id = cursor.fetchone()[0]
            for position, box_id in enumerate(box_ids):
                cursor.execute("""
                    INSERT INTO dmFieldBoxMappings (field_mapping_id, bounding_box_id, position)
                    VALUES (?, ?, ?)
                """, field_id, box_id, position)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        return TemplateField(id=field_id, template_id=template_id, name=name, label=label,
                             value_type=value_type, font_size=font_size, box_ids=list(box_ids))

    def get_field(self, field_id: int) -> Optional[TemplateField]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT id, template_id, field_name, field_label, field_type, font_size
                FROM dmFieldMappings WHERE id = ?
            """, field_id)
            row = cursor.fetchone()
            if not row:
                return None
            cursor.execute("""
                SELECT bounding_box_id FROM dmFieldBoxMappings
                WHERE field_mapping_id = ? ORDER BY position
            """, field_id)
            return self._row_to_field(row, [r[0] for r in cursor.fetchall()])

    def list_fields(self, template_id: int) -> List[TemplateField]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT id, template_id, field_name, field_label, field_type, font_size
                FROM dmFieldMappings WHERE template_id = ?
                ORDER BY id
            """, template_id)
            rows = cursor.fetchall()
            box_ids = self._box_ids_by_field(cursor, template_id)
            return [self._row_to_field(row, box_ids.get(row.id, [])) for row in rows]

    def update_field(self, field: TemplateField) -> None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                UPDATE dmFieldMappings
                SET field_label = ?, field_type = ?, font_size = ?
                WHERE id = ?
            """, field.label, field.value_type, field.font_size, field.id)
            conn.commit()

    def delete_field(self, field_id: int) -> None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM dmFieldBoxMappings WHERE field_mapping_id = ?", field_id)
            cursor.execute("DELETE FROM dmFieldMappings WHERE id = ?", field_id)
            conn.commit()

    def field_id_for_box(self, box_id: int) -> Optional[int]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT field_mapping_id FROM dmFieldBoxMappings WHERE bounding_box_id = ?", box_id)
            row = cursor.fetchone()
            return row[0] if row else None
