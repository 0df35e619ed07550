"""LaTeX <-> HTML approximation for the in-browser visual editor.

``latex_to_html`` is an ordered list of regex substitutions: preamble card,
title page, sections, text formatting, lists, math, figures, tables, other
environments, then cleanup. It is lossy by nature and only meant for
display. ``html_to_latex`` walks the editor's HTML back into LaTeX on a
best-effort basis.
"""

import re
from html.parser import HTMLParser

from bpmn_docs.generators.latex import escape_latex

DEFAULT_PREAMBLE = "\n".join([
    "\\documentclass{article}",
    "\\usepackage{graphicx}",
    "\\usepackage{longtable}",
    "\\usepackage{booktabs}",
    "\\usepackage{array}",
    "\\usepackage{hyperref}",
    "",
])

# Column format such as {@{}ll@{}}: one level of nested braces
_COLSPEC = r"\{(?:[^{}]|\{[^{}]*\})*\}"
_AMP = "___AMP___"
_ROW_SEP = "|||ROW_SEP|||"

_MATH_SPAN = ('<span style="font-family:\'Times New Roman\',serif;font-style:italic;'
              'background:#f8f9fa;padding:0 4px;border-radius:2px;">')
_MATH_BLOCK = ('<div style="text-align:center;font-family:\'Times New Roman\',serif;'
               'font-style:italic;padding:1em;margin:1em 0;background:#f8f9fa;border-radius:4px;">')
_TH_STYLE = ("border:1px solid #ccc;padding:10px 12px;background:#004d4d;color:white;"
             "font-weight:bold;text-align:left;")
_TD_STYLE = "border:1px solid #ccc;padding:10px 12px;text-align:left;vertical-align:top;"

# (pattern, replacement) pairs, applied in list order
_SECTIONS = [
    (r"\\chapter\*?\{([^}]*)\}",
     r'<h1 style="font-size:1.8em;border-bottom:2px solid #004d4d;padding-bottom:0.3em;">\1</h1>'),
    (r"\\section\*?\{([^}]*)\}",
     r'<h2 style="font-size:1.4em;color:#1a1a2e;border-bottom:1px solid #ddd;">\1</h2>'),
    (r"\\subsection\*?\{([^}]*)\}", r'<h3 style="font-size:1.2em;color:#333;">\1</h3>'),
    (r"\\subsubsection\*?\{([^}]*)\}", r'<h4 style="font-size:1.1em;color:#444;">\1</h4>'),
    (r"\\paragraph\*?\{([^}]*)\}", r'<h5 style="font-size:1em;font-weight:bold;">\1</h5>'),
]
_FORMATTING = [
    (r"\\textbf\{([^}]*)\}", r"<strong>\1</strong>"),
    (r"\\textit\{([^}]*)\}", r"<em>\1</em>"),
    (r"\\underline\{([^}]*)\}", r"<u>\1</u>"),
    (r"\\emph\{([^}]*)\}", r"<em>\1</em>"),
    (r"\\texttt\{([^}]*)\}", r"<code>\1</code>"),
]
_LISTS = [
    (r"\\begin\{itemize\}(\[[^\]]*\])?", '<ul style="margin:0.5em 0;padding-left:1.5em;">'),
    (r"\\end\{itemize\}", "</ul>"),
    (r"\\begin\{enumerate\}(\[[^\]]*\])?", '<ol style="margin:0.5em 0;padding-left:1.5em;">'),
    (r"\\end\{enumerate\}", "</ol>"),
    (r"\\item\s*", "<li>"),
]
_ENVIRONMENTS = [
    (r"\\begin\{table\}(\[[^\]]*\])?", '<div style="margin:1em 0;">'),
    (r"\\end\{table\}", "</div>"),
    (r"\\begin\{center\}", '<div style="text-align:center;">'),
    (r"\\end\{center\}", "</div>"),
    (r"\\begin\{quote\}",
     '<blockquote style="margin:1em 2em;padding:0.5em 1em;border-left:3px solid #ccc;">'),
    (r"\\end\{quote\}", "</blockquote>"),
    (r"\\begin\{abstract\}",
     '<div style="margin:1em 2em;padding:1em;background:#f0f4f8;"><strong>Abstract</strong><br>'),
    (r"\\end\{abstract\}", "</div>"),
    (r"\\centering", ""),
    (r"\\noindent", ""),
    (r"\\maketitle", ""),
    (r"\\tableofcontents", '<div style="color:#666;font-style:italic;">[Table of Contents]</div>'),
    (r"\\listoffigures", '<div style="color:#666;font-style:italic;">[List of Figures]</div>'),
    (r"\\listoftables", '<div style="color:#666;font-style:italic;">[List of Tables]</div>'),
]


def _sub_all(rules, text):
    for pattern, repl in rules:
        text = re.sub(pattern, repl, text)
    return text


def _table_to_html(inner):
    body = inner.replace("\r\n", "\n")
    body = re.sub(r"\n+", " ", body)
    body = re.sub(r"\\(toprule|midrule|bottomrule|hline|endhead|endfirsthead|endfoot|endlastfoot)",
                  _ROW_SEP, body)
    body = re.sub(r"\\cline\{[^}]*\}", "", body)
    body = re.sub(r"\\multicolumn\{\d+\}\{[^}]*\}\{([^}]*)\}", r"\1", body)
    body = _sub_all(_FORMATTING[:2], body).strip()
    body = body.replace("\\\\", _ROW_SEP)

    raw_rows = []
    for row in body.split(_ROW_SEP):
        row = row.strip()
        if not row or re.match(r"^\\[a-z]", row, re.I):
            continue
        if "&" in row or re.sub(r"[^a-zA-Z0-9]", "", row):
            raw_rows.append(row)

    rows = []
    for row in raw_rows:
        clean = re.sub(r"\\[a-zA-Z]+\{[^}]*\}", "", row)
        clean = re.sub(r"\\[a-zA-Z]+", "", clean).strip()
        cells = [c.strip().strip("|").strip().replace(_AMP, "&amp;") for c in clean.split("&")]
        if any(cells):
            rows.append(cells)

    if not rows:
        return "<p><em>[Empty table]</em></p>"

    width = max(len(r) for r in rows)
    rows = [r + [""] * (width - len(r)) for r in rows]
    head = "".join(f'<th style="{_TH_STYLE}">{c}</th>' for c in rows[0])
    body_html = []
    for idx, row in enumerate(rows[1:]):
        bg = "background:#fff;" if idx % 2 == 0 else "background:#f9f9f9;"
        body_html.append("<tr>" + "".join(f'<td style="{_TD_STYLE}{bg}">{c}</td>' for c in row) + "</tr>")
    return (
        '<table style="border-collapse:collapse;width:100%;margin:1em 0;border:1px solid #ccc;">'
        f"<thead><tr>{head}</tr></thead><tbody>{''.join(body_html)}</tbody></table>"
    )


def _titlepage(match):
    content = match.group(1)
    content = re.sub(r"\\vspace\{[^}]*\}|\\vfill|\\centering|\\noindent", "", content)
    content = re.sub(r"\\rule\{[^}]*\}\{[^}]*\}",
                     '<hr style="border:none;border-top:2px solid #004d4d;margin:1em 0;">', content)
    content = re.sub(r"\\includegraphics[^}]*\{[^}]*\}", "[Logo]", content)
    for cmd, style in (("Huge", "font-size:2em;font-weight:bold;"),
                       ("LARGE", "font-size:1.5em;font-weight:bold;"),
                       ("Large", "font-size:1.2em;"),
                       ("large", "font-size:1.1em;"),
                       ("small", "font-size:0.9em;")):
        content = re.sub(rf"\\{cmd}\s*", f'<span style="{style}">', content)
    content = _sub_all(_FORMATTING[:2], content)
    content = content.replace("\\\\", "<br>")
    content = re.sub(r"\{([^{}]*)\}", r"\1", content)
    content = re.sub(r"\\[a-zA-Z]+", "", content)
    return ('<div style="text-align:center;padding:2em;margin-bottom:2em;border:2px solid #004d4d;'
            f'border-radius:8px;background:#fafafa;">{content}</div>')


def _figure(match):
    inner = match.group(2)
    img = re.search(r"\\includegraphics(\[[^\]]*\])?\{([^}]*)\}", inner)
    caption = re.search(r"\\caption\{([^}]*)\}", inner)
    out = '<figure style="text-align:center;margin:1.5em 0;padding:1em;border:1px solid #e0e0e0;">'
    if img:
        out += f'<div style="color:#666;">[Image: {img.group(2)}]</div>'
    else:
        out += '<div style="color:#999;padding:2em;">[Figure placeholder]</div>'
    if caption:
        out += f'<figcaption style="font-style:italic;color:#666;">{caption.group(1)}</figcaption>'
    return out + "</figure>"


def split_preamble(latex):
    """Return ``(preamble, body)``; preamble is "" when there is no document env."""
    match = re.match(r"^([\s\S]*?)\\begin\{document\}", latex or "")
    if not match:
        return "", latex or ""
    return match.group(1), latex[match.end():]


def latex_to_html(latex):
    """Render LaTeX source as styled HTML for display."""
    preamble, body = split_preamble(latex or "")
    text = body.replace("\\&", _AMP)
    text = re.sub(r"(?<!\\)%.*", "", text)

    preamble_html = ""
    if preamble:
        doc_class = re.search(r"\\documentclass(\[[^\]]*\])?\{([^}]*)\}", preamble)
        packages = re.findall(r"\\usepackage(?:\[[^\]]*\])?\{[^}]*\}", preamble)
        preamble_html = ('<div style="background:#f0f4f8;border:1px solid #d0d7de;border-radius:6px;'
                         'padding:12px;margin-bottom:1.5em;font-family:monospace;font-size:12px;">'
                         '<div style="color:#0969da;font-weight:bold;">Document Setup</div>')
        if doc_class:
            preamble_html += f"<div>Class: <strong>{doc_class.group(2)}</strong></div>"
        if packages:
            preamble_html += f'<div style="color:#666;font-size:11px;">Packages: {len(packages)} loaded</div>'
        preamble_html += "</div>"

    text = re.sub(r"\\end\{document\}[\s\S]*$", "", text)
    text = re.sub(r"\\begin\{titlepage\}([\s\S]*?)\\end\{titlepage\}", _titlepage, text)
    text = _sub_all(_SECTIONS, text)
    text = _sub_all(_FORMATTING, text)
    text = _sub_all(_LISTS, text)

    text = re.sub(r"\\\[([\s\S]*?)\\\]", lambda m: f"{_MATH_BLOCK}{m.group(1).strip()}</div>", text)
    text = re.sub(r"\\begin\{equation\*?\}([\s\S]*?)\\end\{equation\*?\}",
                  lambda m: f"{_MATH_BLOCK}{m.group(1).strip()}</div>", text)
    text = re.sub(r"\\\(([\s\S]*?)\\\)", lambda m: f"{_MATH_SPAN}{m.group(1)}</span>", text)
    text = re.sub(r"\$([^$]+)\$", lambda m: f"{_MATH_SPAN}{m.group(1)}</span>", text)

    text = re.sub(r"\\begin\{figure\}(\[[^\]]*\])?([\s\S]*?)\\end\{figure\}", _figure, text)
    text = re.sub(r"\\begin\{tabular\}" + _COLSPEC + r"([\s\S]*?)\\end\{tabular\}",
                  lambda m: _table_to_html(m.group(1)), text)
    text = re.sub(r"\\begin\{longtable\}" + _COLSPEC + r"([\s\S]*?)\\end\{longtable\}",
                  lambda m: _table_to_html(m.group(1)), text)
    text = re.sub(r"\\begin\{verbatim\}([\s\S]*?)\\end\{verbatim\}",
                  r'<pre style="background:#f5f5f5;padding:1em;font-family:monospace;">\1</pre>', text)
    text = _sub_all(_ENVIRONMENTS, text)

    # cleanup
    text = re.sub(r"\\begin\{[^}]*\}(\[[^\]]*\])?(\{[^}]*\})*", "", text)
    text = re.sub(r"\\end\{[^}]*\}", "", text)
    text = text.replace("\\\\", "<br>")
    text = re.sub(r"\\[a-zA-Z@]+\*?(\[[^\]]*\])?(\{[^{}]*\})*", "", text)
    text = text.replace(_AMP, "&amp;")
    text = text.replace("---", "\u2014").replace("--", "\u2013")
    text = text.replace("``", '"').replace("''", '"')
    text = text.replace("\\", "")
    text = re.sub(r"\{([^{}]*)\}", r"\1", text)
    text = re.sub(r"[{}]", "", text)
    text = re.sub(r"\n\s*\n+", "</p><p>", text)
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"<p>\s*</p>", "", text).strip()

    return ('<div style="font-family: Georgia, \'Times New Roman\', serif; line-height: 1.7; color: #333;">'
            f"{preamble_html}{text}</div>")


class _LatexWriter(HTMLParser):
    """Streams editor HTML into LaTeX markup."""

    _INLINE = {"strong": "textbf", "b": "textbf", "em": "textit", "i": "textit",
               "u": "underline", "code": "texttt"}
    _HEADINGS = {"h1": "section", "h2": "section", "h3": "subsection",
                 "h4": "subsubsection", "h5": "paragraph"}
    _SKIP = {"style", "script", "head"}

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.out = []
        self.skip = 0
        self.table = None
        self.row = None
        self.cell = None

    def _emit(self, text):
        if self.cell is not None:
            self.cell.append(text)
        else:
            self.out.append(text)

    def handle_starttag(self, tag, attrs):
        if tag in self._SKIP:
            self.skip += 1
        elif tag in self._INLINE:
            self._emit(f"\\{self._INLINE[tag]}{{")
        elif tag in self._HEADINGS:
            self._emit(f"\n\n\\{self._HEADINGS[tag]}{{")
        elif tag == "ul":
            self._emit("\n\\begin{itemize}\n")
        elif tag == "ol":
            self._emit("\n\\begin{enumerate}\n")
        elif tag == "li":
            self._emit("\\item ")
        elif tag == "br":
            self._emit("\\\\\n")
        elif tag == "p":
            self._emit("\n\n")
        elif tag == "table":
            self.table = []
        elif tag == "tr" and self.table is not None:
            self.row = []
        elif tag in ("td", "th") and self.row is not None:
            self.cell = []

    def handle_endtag(self, tag):
        if tag in self._SKIP:
            self.skip = max(0, self.skip - 1)
        elif tag in self._INLINE or tag in self._HEADINGS:
            self._emit("}")
            if tag in self._HEADINGS:
                self._emit("\n")
        elif tag == "ul":
            self._emit("\\end{itemize}\n")
        elif tag == "ol":
            self._emit("\\end{enumerate}\n")
        elif tag == "li":
            self._emit("\n")
        elif tag in ("td", "th") and self.cell is not None:
            self.row.append("".join(self.cell).strip())
            self.cell = None
        elif tag == "tr" and self.row is not None:
            self.table.append(self.row)
            self.row = None
        elif tag == "table" and self.table is not None:
            self.out.append(self._tabular(self.table))
            self.table = None

    def handle_data(self, data):
        if self.skip:
            return
        if self.table is not None and self.cell is None:
            return
        self._emit(escape_latex(data))

    @staticmethod
    def _tabular(rows):
        if not rows:
            return ""
        width = max(len(r) for r in rows)
        lines = ["", f"\\begin{{tabular}}{{{'l' * width}}}", "\\toprule"]
        for idx, row in enumerate(rows):
            lines.append(" & ".join(row + [""] * (width - len(row))) + " \\\\")
            if idx == 0 and len(rows) > 1:
                lines.append("\\midrule")
        lines += ["\\bottomrule", "\\end{tabular}", ""]
        return "\n".join(lines)


def html_to_latex(html, preamble=None):
    """Convert editor HTML back into a full LaTeX document.

    ``preamble`` (everything before ``\\begin{document}``) is reused when
    given, so packages and title data survive a visual edit.
    """
    writer = _LatexWriter()
    writer.feed(html or "")
    writer.close()
    body = "".join(writer.out)
    body = re.sub(r"[ \t]+\n", "\n", body)
    body = re.sub(r"\n{3,}", "\n\n", body).strip()
    head = preamble if preamble and preamble.strip() else DEFAULT_PREAMBLE
    return f"{head.rstrip()}\n\n\\begin{{document}}\n\n{body}\n\n\\end{{document}}\n"
