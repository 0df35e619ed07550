"""LaTeX process documentation.

``build_document`` turns a file node (its ``to_dict()`` shape, or any dict
with the same camelCase blocks) into a complete article. ``parse_document``
reads the same layout back into metadata blocks on a best-effort basis;
anything it does not recognise is ignored.
"""

import re

TABLES = (
    "processTable",
    "processDetailsTable",
    "frameworksTable",
    "kpisTable",
    "signOffTable",
    "historyTable",
    "triggerTable",
)

_ESCAPES = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}
_ESCAPE_RE = re.compile("|".join(re.escape(c) for c in _ESCAPES))
_UNESCAPE = [
    (r"\textbackslash{}", "\\"),
    (r"\textasciitilde{}", "~"),
    (r"\textasciicircum{}", "^"),
    (r"\&", "&"),
    (r"\%", "%"),
    (r"\$", "$"),
    (r"\#", "#"),
    (r"\_", "_"),
    (r"\{", "{"),
    (r"\}", "}"),
]

# (row label, block, field) for the two-column "Field & Value" tables
PROCESS_ROWS = (
    ("Process Name", "processMetadata", "processName"),
    ("Process Owner", "processMetadata", "processOwner"),
    ("Process Manager", "processMetadata", "processManager"),
    ("Status", "advancedDetails", "processStatus"),
    ("Classification", "advancedDetails", "classification"),
)
DETAIL_ROWS = (
    ("Description", "processMetadata", "description"),
    ("Version", "advancedDetails", "versionNo"),
    ("Date of Creation", "advancedDetails", "dateOfCreation"),
    ("Date of Review", "advancedDetails", "dateOfReview"),
    ("Effective Date", "advancedDetails", "effectiveDate"),
    ("Last Modified", "advancedDetails", "modificationDate"),
    ("Modified By", "advancedDetails", "modifiedBy"),
    ("Change Description", "advancedDetails", "changeDescription"),
    ("Created By", "advancedDetails", "createdBy"),
)
SIGN_OFF_ROWS = (
    ("Responsibility", "signOffData", "responsibility"),
    ("Name", "signOffData", "name"),
    ("Designation", "signOffData", "designation"),
    ("Date", "signOffData", "date"),
    ("Signature", "signOffData", "signature"),
)


def escape_latex(value):
    """Escape LaTeX special characters in user-entered text."""
    if value is None:
        return ""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(0)], str(value))


def unescape_latex(value):
    out = value or ""
    for escaped, plain in _UNESCAPE:
        out = out.replace(escaped, plain)
    return out


def _block(node, key):
    value = node.get(key)
    return value if isinstance(value, dict) else {}


def _begin_table(lines, title, colfmt, header):
    lines.append(f"\\section{{{title}}}")
    lines.append(f"\\begin{{longtable}}{{{colfmt}}}")
    lines.append("\\toprule")
    lines.append(header + "\\\\")
    lines.append("\\midrule")


def _end_table(lines):
    lines.append("\\bottomrule")
    lines.append("\\end{longtable}")
    lines.append("")


def _field_rows(lines, node, rows):
    for label, block, field in rows:
        value = _block(node, block).get(field)
        if value:
            lines.append(f"{label} & {escape_latex(value)}\\\\")


def build_document(node, kpis=None, standards=None, tables=None, author=None):
    """Render a full LaTeX article for one process file.

    Args:
        node: dict with ``name`` and the camelCase metadata blocks.
        kpis: KPI dicts (``to_dict()`` shape) for the KPI table.
        standards: standard dicts (``to_dict()`` shape) for the frameworks table.
        tables: subset of ``TABLES`` to include; all of them by default.
        author: overrides the process owner on the title page.
    """
    node = node or {}
    pm = _block(node, "processMetadata")
    hd = _block(node, "historyData")
    td = _block(node, "triggerData")
    selected = set(TABLES if tables is None else tables)

    title = pm.get("processName") or node.get("name") or "Process Documentation"
    lines = [
        "\\documentclass{article}",
        "\\usepackage{graphicx}",
        "\\usepackage{longtable}",
        "\\usepackage{booktabs}",
        "",
        f"\\title{{{escape_latex(title)}}}",
        f"\\author{{{escape_latex(author or pm.get('processOwner') or 'Author')}}}",
        "\\date{\\today}",
        "",
        "\\begin{document}",
        "",
        "\\maketitle",
        "",
    ]

    if pm.get("processName") or pm.get("description"):
        lines.append("\\section{Process Overview}")
        if pm.get("processName"):
            lines.append(f"\\textbf{{Process Name:}} {escape_latex(pm['processName'])}\\\\")
        if pm.get("description"):
            lines.append("")
            lines.append(escape_latex(pm["description"]))
        lines.append("")

    if "processTable" in selected:
        _begin_table(lines, "Process Table", "@{}ll@{}", "Field & Value")
        _field_rows(lines, node, PROCESS_ROWS)
        _end_table(lines)

    if "processDetailsTable" in selected:
        _begin_table(lines, "Process Details Table", "@{}ll@{}", "Detail & Description")
        _field_rows(lines, node, DETAIL_ROWS)
        _end_table(lines)

    if "frameworksTable" in selected:
        _begin_table(lines, "Frameworks and Standards Table", "@{}lll@{}",
                     "Framework / Standard & Code & Description")
        for std in standards or []:
            lines.append(
                f"{escape_latex(std.get('name'))} & {escape_latex(std.get('code'))} & "
                f"{escape_latex(std.get('description'))}\\\\"
            )
        if not standards:
            lines.append("% No standards selected.")
        _end_table(lines)

    if "kpisTable" in selected:
        _begin_table(lines, "Associated KPIs Table", "@{}llll@{}",
                     "KPI Name & Target & Direction & Frequency")
        for kpi in kpis or []:
            lines.append(
                f"{escape_latex(kpi.get('kpi'))} & {escape_latex(kpi.get('targetValue'))} & "
                f"{escape_latex(kpi.get('kpiDirection'))} & {escape_latex(kpi.get('frequency'))}\\\\"
            )
        if not kpis:
            lines.append("% No KPIs linked to this process.")
        _end_table(lines)

    if "signOffTable" in selected:
        _begin_table(lines, "Sign OFF Table", "@{}ll@{}", "Field & Value")
        _field_rows(lines, node, SIGN_OFF_ROWS)
        _end_table(lines)

    if "historyTable" in selected:
        _begin_table(lines, "History Table", "@{}llll@{}", "Version & Date & Status / Remarks & Author")
        if any(hd.get(k) for k in ("versionNo", "date", "statusRemarks", "author")):
            lines.append(" & ".join(escape_latex(hd.get(k)) for k in
                                    ("versionNo", "date", "statusRemarks", "author")) + "\\\\")
        else:
            lines.append("% No history data available yet.")
        _end_table(lines)

    if "triggerTable" in selected:
        _begin_table(lines, "Trigger Table", "@{}lll@{}", "Triggers & Inputs & Outputs")
        if any(td.get(k) for k in ("triggers", "inputs", "outputs")):
            lines.append(" & ".join(escape_latex(td.get(k)) for k in
                                    ("triggers", "inputs", "outputs")) + "\\\\")
        else:
            lines.append("% No trigger data available yet.")
        _end_table(lines)

    lines.append("\\end{document}")
    return "\n".join(lines)


_SECTION_RE = re.compile(
    r"\\section\*?\{(?P<title>[^}]*)\}(?P<body>.*?)(?=\\section|\\end\{document\}|\Z)", re.S
)
_LONGTABLE_RE = re.compile(r"\\begin\{longtable\}\{(?:[^{}]|\{[^{}]*\})*\}(.*?)\\end\{longtable\}", re.S)
# A row ends at an unescaped "\\"
_ROW_SPLIT_RE = re.compile(r"(?<!\\)\\\\")
# A cell ends at an unescaped "&"
_CELL_SPLIT_RE = re.compile(r"(?<!\\)&")


def _table_rows(body):
    match = _LONGTABLE_RE.search(body)
    if not match:
        return []
    inner = re.sub(r"\\(toprule|midrule|bottomrule|hline)", "", match.group(1))
    inner = re.sub(r"(?<!\\)%[^\n]*", "", inner)
    rows = []
    for raw in _ROW_SPLIT_RE.split(inner):
        raw = raw.strip()
        if not raw:
            continue
        rows.append([unescape_latex(c.strip()) for c in _CELL_SPLIT_RE.split(raw)])
    return rows[1:]  # drop header


def _apply_rows(result, rows, mapping):
    labels = {label: (block, field) for label, block, field in mapping}
    for row in rows:
        if len(row) >= 2 and row[0] in labels:
            block, field = labels[row[0]]
            result.setdefault(block, {})[field] = row[1]


def parse_document(latex):
    """Recover metadata blocks from a document produced by ``build_document``.

    Returns a dict that may contain ``title``, ``author``, ``processMetadata``,
    ``advancedDetails``, ``signOffData``, ``historyData`` and ``triggerData``.
    """
    latex = latex or ""
    result = {}

    title = re.search(r"\\title\{([^}]*)\}", latex)
    if title:
        result["title"] = unescape_latex(title.group(1))
    author = re.search(r"\\author\{([^}]*)\}", latex)
    if author:
        result["author"] = unescape_latex(author.group(1))

    for match in _SECTION_RE.finditer(latex):
        section = match.group("title").strip()
        body = match.group("body")
        if section == "Process Overview":
            name = re.search(r"\\textbf\{Process Name:\}\s*(.*?)(?<!\\)\\\\", body)
            pm = result.setdefault("processMetadata", {})
            if name:
                pm["processName"] = unescape_latex(name.group(1).strip())
                body = body[name.end():]
            description = body.strip()
            if description:
                pm["description"] = unescape_latex(description)
        elif section == "Process Table":
            _apply_rows(result, _table_rows(body), PROCESS_ROWS)
        elif section == "Process Details Table":
            _apply_rows(result, _table_rows(body), DETAIL_ROWS)
        elif section == "Sign OFF Table":
            _apply_rows(result, _table_rows(body), SIGN_OFF_ROWS)
        elif section == "History Table":
            rows = _table_rows(body)
            if rows:
                keys = ("versionNo", "date", "statusRemarks", "author")
                result["historyData"] = dict(zip(keys, rows[0] + [""] * (4 - len(rows[0]))))
        elif section == "Trigger Table":
            rows = _table_rows(body)
            if rows:
                keys = ("triggers", "inputs", "outputs")
                result["triggerData"] = dict(zip(keys, rows[0] + [""] * (3 - len(rows[0]))))

    return result
