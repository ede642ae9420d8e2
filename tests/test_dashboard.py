import pytest

from grafreport.dashboard import (
    GridPos,
    Panel,
    PanelType,
    Row,
    new_dashboard,
    sanitize_latex,
    variables_text,
)

V4_DASH_JSON = """
{"Dashboard":
    {
        "Rows":
            [{
                "Panels":
                    [{"Type":"singlestat", "Id":1},
                    {"Type":"graph", "Id":2}],
                "Title": "RowTitle #"
            },
            {"Panels":
                [{"Type":"singlestat", "Id":3, "Title": "Panel3Title #"}]
            }],
        "title":"DashTitle #"
    },
"Meta":
    {"Slug":"testDash"}
}"""

V5_DASH_JSON = """
{"Dashboard":
    {
        "Panels":
            [{"Type":"singlestat", "Id":0},
            {"Type":"graph", "Id":1, "GridPos":{"H":6,"W":24,"X":0,"Y":0}},
            {"Type":"singlestat", "Id":2, "Title":"Panel3Title #"},
            {"Type":"text", "GridPos":{"H":6.5,"W":20.5,"X":0,"Y":0}, "Id":3},
            {"Type":"table", "Id":4},
            {"Type":"row", "Id":5}],
        "Title":"DashTitle #"
    },

"Meta":
    {"Slug":"testDash"}
}"""


@pytest.fixture
def v4_dash():
    return new_dashboard(V4_DASH_JSON, {})


@pytest.fixture
def v5_dash():
    return new_dashboard(V5_DASH_JSON, {})


def test_v4_panel_types(v4_dash):
    assert v4_dash.panels[0].is_type(PanelType.GRAPH) is False
    assert v4_dash.panels[0].is_type(PanelType.TEXT) is False
    assert v4_dash.panels[0].is_type(PanelType.TABLE) is False
    assert v4_dash.panels[0].is_type(PanelType.SINGLE_STAT) is True
    assert v4_dash.panels[1].is_type(PanelType.GRAPH) is True
    assert v4_dash.panels[2].is_type(PanelType.SINGLE_STAT) is True


def test_v4_row_title_sanitised(v4_dash):
    assert v4_dash.rows[0].title == "RowTitle \\#"


def test_v4_panel_titles_sanitised(v4_dash):
    assert v4_dash.panels[2].title == "Panel3Title \\#"
    assert v4_dash.rows[1].panels[0].title == "Panel3Title \\#"


def test_v4_panels_from_all_rows(v4_dash):
    assert len(v4_dash.panels) == 3
    assert [p.id for p in v4_dash.panels] == [1, 2, 3]


def test_v4_title_sanitised(v4_dash):
    assert v4_dash.title == "DashTitle \\#"


def test_v5_panel_types(v5_dash):
    assert v5_dash.panels[0].is_type(PanelType.SINGLE_STAT)
    assert v5_dash.panels[1].is_type(PanelType.GRAPH)
    assert v5_dash.panels[2].is_type(PanelType.SINGLE_STAT)
    assert v5_dash.panels[3].is_type(PanelType.TEXT)
    assert v5_dash.panels[4].is_type(PanelType.TABLE)


def test_v5_panel_titles_sanitised(v5_dash):
    assert v5_dash.panels[2].title == "Panel3Title \\#"


def test_v5_skips_row_panels(v5_dash):
    assert len(v5_dash.panels) == 5
    assert [p.id for p in v5_dash.panels[:3]] == [0, 1, 2]
    assert v5_dash.rows == []


def test_v5_title(v5_dash):
    assert v5_dash.title == "DashTitle \\#"


def test_v5_grid_pos(v5_dash):
    assert v5_dash.panels[1].grid_pos.h == 6
    assert v5_dash.panels[1].grid_pos.w == 24
    assert v5_dash.panels[3].grid_pos.h == 6.5
    assert v5_dash.panels[3].grid_pos.w == 20.5


def test_variable_values_included():
    dash = new_dashboard('{"Dashboard": {}}', {"var-one": ["oneval"], "var-two": ["twoval"]})
    assert "oneval" in dash.variable_values
    assert "twoval" in dash.variable_values


def test_variable_values_sanitised():
    dash = new_dashboard(b'{"Dashboard": {}}', {"var-x": ["a_b"]})
    assert dash.variable_values == "a\\_b"


def test_variables_text_joins_values():
    assert variables_text({"var-a": ["1", "2"], "var-b": ["3"]}) == "1, 2, 3"
    assert variables_text({}) == ""
    assert variables_text(None) == ""


def test_description_sanitised():
    dash = new_dashboard('{"dashboard": {"description": "50% up"}}', None)
    assert dash.description == "50\\% up"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("a\\b", "a\\textbackslash b"),
        ("a&b", "a\\&b"),
        ("100%", "100\\%"),
        ("$5", "\\$5"),
        ("#1", "\\#1"),
        ("a_b", "a\\_b"),
        ("{x}", "\\{x\\}"),
        ("~", "\\textasciitilde "),
        ("^", "\\textasciicircum "),
        ("plain", "plain"),
    ],
)
def test_sanitize_latex(text, expected):
    assert sanitize_latex(text) == expected


def test_panel_geometry():
    panel = Panel(id=1, type="graph", grid_pos=GridPos(h=6, w=12))
    assert panel.is_partial_width() is True
    assert panel.width() == pytest.approx(0.48)
    assert panel.height() == pytest.approx(0.24)
    full = Panel(grid_pos=GridPos(w=24))
    assert full.is_partial_width() is False


def test_panel_is_single_stat():
    assert Panel(type="singlestat").is_single_stat() is True
    assert Panel(type="graph").is_single_stat() is False


def test_row_visibility():
    assert Row(showtitle=True).is_visible() is True
    assert Row().is_visible() is False


def test_row_showtitle_parsed():
    dash = new_dashboard(
        '{"Dashboard": {"rows": [{"showTitle": true, "panels": []}]}}', {}
    )
    assert dash.rows[0].is_visible() is True


def test_invalid_json_raises():
    with pytest.raises(ValueError):
        new_dashboard("{not json", {})


def test_wrong_field_type_raises():
    with pytest.raises(ValueError):
        new_dashboard('{"Dashboard": {"Panels": [{"Id": "one"}]}}', {})