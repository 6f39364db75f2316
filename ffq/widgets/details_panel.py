# ffq/widgets/details_panel.py
import shlex
import time
from PySide6.QtWidgets import QTreeWidget, QTreeWidgetItem, QHeaderView

from ..models.job import Job
from ..parsers.ffmpeg_progress import format_eta


def _fmt_ts(ts: float | None) -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts)) if ts else ""


class DetailsPanel(QTreeWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setHeaderLabels(["Property", "Value"])
        self.setUniformRowHeights(False)
        self.setRootIsDecorated(True)
        self.setWordWrap(True)
        hdr = self.header()
        hdr.setSectionResizeMode(0, QHeaderView.ResizeToContents)
        hdr.setSectionResizeMode(1, QHeaderView.Stretch)

    def show_job(self, job: Job, ffmpeg_path: str = "ffmpeg"):
        self.clear()

        job_node = QTreeWidgetItem(["Job", job.id])
        self.addTopLevelItem(job_node)
        QTreeWidgetItem(job_node, ["Status", job.status])
        QTreeWidgetItem(job_node, ["Input", job.input_path])
        QTreeWidgetItem(job_node, ["Output", job.output_path])
        if job.expected_duration_seconds:
            QTreeWidgetItem(job_node, ["Duration", f"{job.expected_duration_seconds:.2f} s"])
        QTreeWidgetItem(job_node, ["Progress", f"{job.progress_percent:.1f}%"])
        if job.speed_label:
            QTreeWidgetItem(job_node, ["Speed", job.speed_label])
        if eta := format_eta(job.eta_seconds):
            QTreeWidgetItem(job_node, ["ETA", eta])
        if job.retry_count:
            QTreeWidgetItem(job_node, ["Auto retries", str(job.retry_count)])

        times = QTreeWidgetItem(["Timing", ""])
        self.addTopLevelItem(times)
        for label, ts in (("Added", job.created_at), ("Started", job.started_at), ("Ended", job.ended_at)):
            if ts:
                QTreeWidgetItem(times, [label, _fmt_ts(ts)])
        if job.started_at and job.ended_at:
            QTreeWidgetItem(times, ["Elapsed", f"{job.ended_at - job.started_at:.1f} s"])

        cmd_node = QTreeWidgetItem(["Command", " ".join(shlex.quote(c) for c in (ffmpeg_path, *job.argv))])
        self.addTopLevelItem(cmd_node)
        for i, arg in enumerate(job.argv):
            QTreeWidgetItem(cmd_node, [f"argv[{i}]", arg])

        if job.error_message:
            err_node = QTreeWidgetItem(["Error", job.error_message.splitlines()[-1]])
            self.addTopLevelItem(err_node)
            for line in job.error_message.splitlines():
                QTreeWidgetItem(err_node, ["", line])

        self.expandAll()
        # argv rows are noise once the command line is visible
        cmd_node.setExpanded(False)
