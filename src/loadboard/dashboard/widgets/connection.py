"""Backend connection pane."""

from __future__ import annotations

from typing import Optional

from .common import QFormLayout, QLabel, QLineEdit, QPushButton, Qt, QVBoxLayout, QWidget, add_glow, repolish


class ConnectionPane(QWidget):  # type: ignore[misc]
    """Where the loadboard backend lives, and whether the push channel is up."""

    def __init__(
        self,
        parent: Optional[QWidget] = None,
        *,
        host: str = "127.0.0.1",
        port: int = 3001,
    ) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.setObjectName("missionPane")
        self.setProperty("paneKind", "connection")
        column = QVBoxLayout(self)  # type: ignore[call-arg]
        column.setContentsMargins(16, 16, 16, 16)
        column.setSpacing(10)
        title = QLabel("Backend")  # type: ignore[call-arg]
        title.setObjectName("paneHeading")
        column.addWidget(title)

        self.host_edit = QLineEdit(host)  # type: ignore[call-arg]
        self.port_edit = QLineEdit(str(port))  # type: ignore[call-arg]
        self.port_edit.setMaxLength(5)
        endpoint_form = QFormLayout()  # type: ignore[call-arg]
        endpoint_form.addRow("Host", self.host_edit)
        endpoint_form.addRow("Port", self.port_edit)
        column.addLayout(endpoint_form)

        self.connect_button = QPushButton()  # type: ignore[call-arg]
        self.connect_button.setObjectName("connectButton")
        column.addWidget(self.connect_button)

        self.status_label = QLabel()  # type: ignore[call-arg]
        self.status_label.setObjectName("connectionStatus")
        self.status_label.setWordWrap(True)
        if Qt is not None:
            self.status_label.setAlignment(Qt.AlignmentFlag.AlignRight)  # type: ignore[attr-defined]
        column.addWidget(self.status_label)

        self.poll_label = QLabel()  # type: ignore[call-arg]
        self.poll_label.setObjectName("histStatusLabel")
        column.addWidget(self.poll_label)

        self.set_connected(False)
        self.set_status("Disconnected", "idle")
        self.set_polling(False)
        add_glow(self, self.connect_button, "#38bdf8")

    def endpoint(self) -> tuple[str, int]:
        """``(host, port)`` as typed; ``ValueError`` when the port is not a number."""

        return self.host_edit.text().strip(), int(self.port_edit.text())

    def set_connected(self, connected: bool) -> None:
        self.connect_button.setText("Disconnect" if connected else "Connect")
        for field in (self.host_edit, self.port_edit):
            field.setEnabled(not connected)

    def set_status(self, text: str, kind: str) -> None:
        """``kind`` is one of idle/connected/error and drives the label colour."""

        self.status_label.setText(text)
        self.status_label.setProperty("statusKind", kind)
        repolish(self.status_label)

    def set_polling(self, active: bool, detail: str = "") -> None:
        self.poll_label.setText(" ".join(part for part in ("Host polling:", "on" if active else "off", detail) if part))


__all__ = ["ConnectionPane"]
