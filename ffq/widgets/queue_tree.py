# ffq/widgets/queue_tree.py
from pathlib import Path
from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QAbstractItemView, QProgressBar, QTreeWidget, QTreeWidgetItem

from ..models.job import Job, QueueState
from ..parsers.ffmpeg_progress import format_eta

COLUMNS = ["Input", "Output", "Status", "Progress", "Speed", "ETA"]
COL_INPUT, COL_OUTPUT, COL_STATUS, COL_PROGRESS, COL_SPEED, COL_ETA = range(len(COLUMNS))

_STATUS_TEXT = {
    "queued": "Queued", "running": "Running", "completed": "Done",
    "failed": "Failed", "canceled": "Canceled",
}


class JobTree(QTreeWidget):
    pathsDropped = Signal(list)  # list[str]

    def __init__(self, *a, **kw):
        super().__init__(*a, **kw)
        self.setColumnCount(len(COLUMNS))
        self.setHeaderLabels(COLUMNS)
        self.setAcceptDrops(True)
        self.setDragDropMode(QAbstractItemView.DropOnly)
        self.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.setUniformRowHeights(True)
        self.setRootIsDecorated(False)
        self._items: dict[str, QTreeWidgetItem] = {}

    def dragEnterEvent(self, event):
        """Accept the drag action if it contains file URLs."""
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            super().dragEnterEvent(event)

    def dragMoveEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            super().dragMoveEvent(event)

    def dropEvent(self, event):
        if event.mimeData().hasUrls():
            paths = []
            for url in event.mimeData().urls():
                if url.isLocalFile():
                    p = Path(url.toLocalFile())
                    if p.exists(): paths.append(str(p))
            if paths:
                self.pathsDropped.emit(paths)
                event.acceptProposedAction()
                return
        super().dropEvent(event)

    def selected_job_id(self) -> str | None:
        item = self.currentItem()
        return item.data(0, Qt.UserRole) if item else None

    def apply_state(self, state: QueueState):
        """Rebuild rows in the queue's display order, reusing existing items."""
        current = self.selected_job_id()
        live = {j.id for j in state.jobs}
        for job_id in [k for k in self._items if k not in live]:
            item = self._items.pop(job_id)
            self.takeTopLevelItem(self.indexOfTopLevelItem(item))

        for row, job in enumerate(state.jobs):
            item = self._items.get(job.id)
            if item is None:
                item = QTreeWidgetItem([""] * len(COLUMNS))
                item.setData(0, Qt.UserRole, job.id)
                self._items[job.id] = item
                self.insertTopLevelItem(row, item)
                self._attach_bar(item)
            elif self.indexOfTopLevelItem(item) != row:
                # moving an item drops its item widget, so re-attach the bar
                self.takeTopLevelItem(self.indexOfTopLevelItem(item))
                self.insertTopLevelItem(row, item)
                self._attach_bar(item)
            self._fill(item, job)

        if current and current in self._items:
            self.setCurrentItem(self._items[current])

    def update_progress(self, job_id: str, percent: float | None, speed: str | None, eta: float | None):
        if not (item := self._items.get(job_id)): return
        if percent is not None and (bar := self.itemWidget(item, COL_PROGRESS)):
            bar.setValue(int(max(0, min(100, percent))))
        item.setText(COL_SPEED, speed or "")
        item.setText(COL_ETA, format_eta(eta))

    def _attach_bar(self, item: QTreeWidgetItem):
        bar = QProgressBar()
        bar.setRange(0, 100)
        bar.setValue(0)
        bar.setFixedHeight(12)
        bar.setTextVisible(True)
        self.setItemWidget(item, COL_PROGRESS, bar)

    def _fill(self, item: QTreeWidgetItem, job: Job):
        item.setText(COL_INPUT, Path(job.input_path).name)
        item.setToolTip(COL_INPUT, job.input_path)
        item.setText(COL_OUTPUT, Path(job.output_path).name)
        item.setToolTip(COL_OUTPUT, job.output_path)
        status = _STATUS_TEXT.get(job.status, job.status)
        if job.retry_count and job.status in ("queued", "running"):
            status += f" (retry {job.retry_count})"
        item.setText(COL_STATUS, status)
        if job.error_message:
            item.setToolTip(COL_STATUS, job.error_message)
        if bar := self.itemWidget(item, COL_PROGRESS):
            bar.setValue(int(job.progress_percent))
        item.setText(COL_SPEED, (job.speed_label or "") if job.status == "running" else "")
        item.setText(COL_ETA, format_eta(job.eta_seconds) if job.status == "running" else "")
