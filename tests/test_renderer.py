import pytest

from src.services.templates_pdf.errors import DocumentError
from src.services.templates_pdf.renderer import FillRenderer, PageCanvas, place_text
from src.services.templates_pdf.schemas import ResolvedBox, ResolvedField


class FakeCanvas:
    """PageCanvas en memoria: ancho de texto fijo por carácter."""

    def __init__(self, page_count=2, char_width=8.0):
        self.page_count = page_count
        self.char_width = char_width
        self.draws = []

    def text_width(self, text, size):
        return len(text) * self.char_width * size / 12

    def draw_text(self, page, x, y, text, size):
        self.draws.append((page, x, y, text, size))

    def to_bytes(self):
        return repr(self.draws).encode()


def field(name, boxes, font_size=12, fid=1):
    return ResolvedField(id=fid, name=name, label=name.title(), value_type="text",
                         font_size=font_size, boxes=boxes)


def box(bid, page=1, x=100, y=200, w=150, h=30):
    return ResolvedBox(id=bid, page=page, x=x, y=y, width=w, height=h)


def test_fake_canvas_satisfies_protocol():
    assert isinstance(FakeCanvas(), PageCanvas)


def test_concrete_centering():
    # "Bob" a 12pt medido como 24 -> x = 100 + (150 - 24) / 2 = 163
    instructions = FillRenderer().plan([field("name", [box(1)])], {"name": "Bob"}, lambda t, s: 24)
    assert len(instructions) == 1
    ins = instructions[0]
    assert ins.x == 163
    assert ins.y == pytest.approx(200 + 30 - (30 - 12 * 0.7) / 2)
    assert (ins.page, ins.text, ins.font_size, ins.field_name, ins.box_id) == (1, "Bob", 12, "name", 1)


def test_long_text_never_starts_left_of_box():
    x, _ = place_text(box(1, w=50), text_width=200, font_size=12)
    assert x == 100


def test_empty_values_are_skipped():
    fields = [field("fieldA", [box(1)], fid=1), field("fieldB", [box(2, y=300)], fid=2),
              field("fieldC", [box(3, y=400)], fid=3)]
    instructions = FillRenderer().plan(fields, {"fieldA": "", "fieldB": "X", "fieldC": "   "},
                                       lambda t, s: 6)
    assert [i.box_id for i in instructions] == [2]
    assert {i.field_name for i in instructions} == {"fieldB"}


def test_missing_value_is_skipped():
    assert FillRenderer().plan([field("a", [box(1)])], {}, lambda t, s: 6) == []


def test_multi_box_fan_out():
    boxes = [box(1, page=1, w=150), box(2, page=1, y=240, w=100), box(3, page=2, x=40, w=300)]
    canvas = FakeCanvas()
    instructions = FillRenderer().render([field("name", boxes)], {"name": "Alice"}, canvas)

    assert len(instructions) == 3
    assert [i.page for i in instructions] == [1, 1, 2]
    width = canvas.text_width("Alice", 12)
    for ins, b in zip(instructions, boxes):
        assert ins.x == pytest.approx(b.x + (b.width - width) / 2)
        assert ins.text == "Alice"
    assert [d[0] for d in canvas.draws] == [1, 1, 2]


def test_page_out_of_range_draws_nothing():
    canvas = FakeCanvas(page_count=1)
    fields = [field("a", [box(1, page=1)], fid=1), field("b", [box(2, page=3)], fid=2)]
    with pytest.raises(DocumentError):
        FillRenderer().render(fields, {"a": "ok", "b": "lost"}, canvas)
    assert canvas.draws == []


def test_plan_is_deterministic():
    fields = [field("a", [box(1), box(2, page=2)], fid=1), field("b", [box(3, y=500)], fid=2)]
    values = {"a": "uno", "b": "dos"}
    r = FillRenderer()
    first = r.plan(fields, values, FakeCanvas().text_width)
    second = r.plan(fields, values, FakeCanvas().text_width)
    assert first == second
