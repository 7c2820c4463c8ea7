"""
Data table component.

Cells are escaped unless the column is listed in `raw_columns`, which callers
use for pre-rendered action forms and links.
"""

from typing import Iterable, Optional, Sequence, Set

from .base import Component


class DataTable(Component):
    def __init__(
        self,
        headers: Sequence[str],
        rows: Iterable[Sequence[object]],
        *,
        raw_columns: Optional[Set[int]] = None,
        empty_text: str = "Nothing to show yet.",
        table_id: Optional[str] = None,
    ) -> None:
        self.headers = list(headers)
        self.rows = [list(r) for r in rows]
        self.raw_columns = raw_columns or set()
        self.empty_text = empty_text
        self.table_id = table_id

    def render(self) -> str:
        if not self.rows:
            return f'<p class="empty-state">{self.escape(self.empty_text)}</p>'
        head = "".join(f'<th scope="col">{self.escape(h)}</th>' for h in self.headers)
        body = []
        for row in self.rows:
            cells = []
            for index, cell in enumerate(row):
                content = str(cell) if index in self.raw_columns else self.escape(cell)
                cells.append(f"<td>{content}</td>")
            body.append(f"<tr>{''.join(cells)}</tr>")
        id_attr = f' id="{self.escape(self.table_id)}"' if self.table_id else ""
        return f"""
        <div class="table-wrap">
            <table class="data-table"{id_attr}>
                <thead><tr>{head}</tr></thead>
                <tbody>{''.join(body)}</tbody>
            </table>
        </div>"""
