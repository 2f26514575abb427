from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field as PydField, model_validator

ValueType = Literal["text", "number", "email", "date"]
VALUE_TYPES = ("text", "number", "email", "date")


class Rect(BaseModel):
    """Rectángulo en espacio documento (puntos PDF, origen arriba-izquierda)."""
    x: float
    y: float
    width: float
    height: float


class Template(BaseModel):
    id: int
    name: str
    filename: str
    file_path: str
    page_count: int
    created_at: datetime
    uniform_height: Optional[float] = None


class Box(BaseModel):
    id: int
    template_id: int
    page: int
    x: float
    y: float
    width: float
    height: float

    def rect(self) -> Rect:
        return Rect(x=self.x, y=self.y, width=self.width, height=self.height)


class TemplateField(BaseModel):
    id: int
    template_id: int
    name: str
    label: str
    value_type: ValueType = "text"
    font_size: float = 10
    box_ids: List[int] = PydField(default_factory=list)


class ResolvedBox(BaseModel):
    id: int
    page: int
    x: float
    y: float
    width: float
    height: float


class ResolvedField(BaseModel):
    id: int
    name: str
    label: str
    value_type: ValueType
    font_size: float
    boxes: List[ResolvedBox] = PydField(default_factory=list)


class DrawInstruction(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int
    x: float
    y: float
    text: str
    font_size: float
    field_name: str
    box_id: int


# ---------- payloads HTTP ----------

class BoxIn(BaseModel):
    """Box tal como lo envía el editor; acepta `w`/`h` como alias de width/height."""
    page: int
    x: float
    y: float
    width: Optional[float] = None
    height: Optional[float] = None
    w: Optional[float] = None
    h: Optional[float] = None

    @model_validator(mode="after")
    def _fill_aliases(self):
        if self.width is None:
            self.width = self.w
        if self.height is None:
            self.height = self.h
        if self.width is None or self.height is None:
            raise ValueError("width/height (o w/h) son requeridos")
        return self

    def rect(self) -> Rect:
        return Rect(x=self.x, y=self.y, width=self.width, height=self.height)


class BulkBoxesIn(BaseModel):
    templateId: int
    boxes: List[BoxIn]


class DrawBoxIn(BaseModel):
    """Box en espacio dispositivo (píxeles a un zoom dado)."""
    templateId: int
    page: int
    zoom: float
    x: float
    y: float
    width: float
    height: float


class MoveIn(BaseModel):
    x: float
    y: float


class ResizeIn(BaseModel):
    width: float
    height: float


class UniformHeightIn(BaseModel):
    height: Optional[float] = None


class FieldIn(BaseModel):
    templateId: int
    fieldName: str
    fieldLabel: str
    fieldType: str = "text"
    fontSize: float = 10
    boxIds: List[int]


class FieldUpdateIn(BaseModel):
    fieldLabel: Optional[str] = None
    fieldType: Optional[str] = None
    fontSize: Optional[float] = None


class TemplateUpdateIn(BaseModel):
    name: str


class FillRequest(BaseModel):
    templateId: int
    values: Dict[str, str] = PydField(default_factory=dict)
