from __future__ import annotations
from typing import Optional, Tuple
from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QFormLayout, QLineEdit, QDoubleSpinBox, QComboBox,
    QLabel, QGroupBox, QDialogButtonBox, QPlainTextEdit
)

from .models import Element, ElementKind, LeasingDetails, PositionStatus
from .utils import MIN_ELEMENT_W, MIN_ELEMENT_H


def _spin(lo: float, hi: float, suffix: str, step: float = 10.0, decimals: int = 0) -> QDoubleSpinBox:
    s = QDoubleSpinBox()
    s.setRange(lo, hi); s.setDecimals(decimals); s.setSingleStep(step); s.setSuffix(suffix)
    return s


class DetailsDialog(QDialog):
    """Double-click editor for one element and its leasing details."""

    def __init__(self, element: Element, details: Optional[LeasingDetails] = None,
                 min_width: float = MIN_ELEMENT_W, min_height: float = MIN_ELEMENT_H, parent=None):
        super().__init__(parent)
        self.setWindowTitle(f"Position: {element.label or element.kind}")
        self.setMinimumWidth(380)
        self._element = element.copy()
        self._details = details or LeasingDetails(position_number=element.label)

        root = QVBoxLayout(self)
        root.setContentsMargins(12, 12, 12, 12)
        root.setSpacing(10)

        # ------- fixture -------
        grp = QGroupBox("Fixture")
        ff = QFormLayout(grp)
        ff.setLabelAlignment(Qt.AlignRight)
        self.ed_label = QLineEdit(element.label)
        self.cmb_kind = QComboBox(); self.cmb_kind.addItems(list(ElementKind.ALL))
        self.cmb_kind.setCurrentText(element.kind)
        self.cmb_status = QComboBox(); self.cmb_status.addItems(list(PositionStatus.ALL))
        self.cmb_status.setCurrentText(element.status)
        self.sp_w = _spin(min_width, 99999, " cm"); self.sp_w.setValue(element.width)
        self.sp_h = _spin(min_height, 99999, " cm"); self.sp_h.setValue(element.height)
        self.sp_rot = _spin(-180, 180, "°", step=5); self.sp_rot.setValue(element.rotation)
        self.ed_tenant = QLineEdit(element.tenant or "")
        self.ed_note = QPlainTextEdit(element.note or "")
        self.ed_note.setFixedHeight(60)
        ff.addRow("Label:", self.ed_label)
        ff.addRow("Type:", self.cmb_kind)
        ff.addRow("Status:", self.cmb_status)
        ff.addRow("Width:", self.sp_w)
        ff.addRow("Depth:", self.sp_h)
        ff.addRow("Rotation:", self.sp_rot)
        ff.addRow("Tenant:", self.ed_tenant)
        ff.addRow("Note:", self.ed_note)
        root.addWidget(grp)

        # ------- leasing -------
        self.grp_lease = QGroupBox("Leasing")
        fl = QFormLayout(self.grp_lease)
        fl.setLabelAlignment(Qt.AlignRight)
        d = self._details
        self.ed_number = QLineEdit(d.position_number)
        self.ed_format = QLineEdit(d.format)
        self.ed_display = QLineEdit(d.display_type)
        self.ed_department = QLineEdit(d.department)
        self.ed_category = QLineEdit(d.category)
        self.ed_purpose = QLineEdit(d.purpose)
        self.ed_responsible = QLineEdit(d.responsible_person)
        self.ed_expiry = QLineEdit(d.expiry_date or "")
        self.ed_expiry.setPlaceholderText("YYYY-MM-DD")
        self.sp_price = _spin(0, 10_000_000, " €", step=50, decimals=2)
        self.sp_price.setValue(d.price or 0.0)
        fl.addRow("Position no.:", self.ed_number)
        fl.addRow("Format:", self.ed_format)
        fl.addRow("Display type:", self.ed_display)
        fl.addRow("Department:", self.ed_department)
        fl.addRow("Category:", self.ed_category)
        fl.addRow("Purpose:", self.ed_purpose)
        fl.addRow("Responsible:", self.ed_responsible)
        fl.addRow("Expires:", self.ed_expiry)
        fl.addRow("Price:", self.sp_price)
        root.addWidget(self.grp_lease)

        self.lbl_hint = QLabel("Construction elements have no tenant or leasing status.")
        self.lbl_hint.setStyleSheet("color:#667085;")
        root.addWidget(self.lbl_hint)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        root.addWidget(buttons)

        self.cmb_kind.currentTextChanged.connect(self._sync_kind)
        self._sync_kind(self.cmb_kind.currentText())

    def _sync_kind(self, kind: str):
        construction = ElementKind.is_construction(kind)
        self.cmb_status.setEnabled(not construction)
        self.ed_tenant.setEnabled(not construction)
        self.grp_lease.setEnabled(not construction)
        self.lbl_hint.setVisible(construction)

    def result_values(self) -> Tuple[Element, LeasingDetails]:
        kind = self.cmb_kind.currentText()
        construction = ElementKind.is_construction(kind)
        el = self._element.copy(
            label=self.ed_label.text().strip(),
            kind=kind,
            status=self._element.status if construction else self.cmb_status.currentText(),
            width=float(self.sp_w.value()),
            height=float(self.sp_h.value()),
            rotation=float(self.sp_rot.value()),
            tenant=None if construction else (self.ed_tenant.text().strip() or None),
            note=self.ed_note.toPlainText().strip() or None,
        )
        details = LeasingDetails(
            position_number=self.ed_number.text().strip() or el.label,
            format=self.ed_format.text().strip(),
            display_type=self.ed_display.text().strip(),
            department=self.ed_department.text().strip(),
            category=self.ed_category.text().strip(),
            purpose=self.ed_purpose.text().strip(),
            responsible_person=self.ed_responsible.text().strip(),
            expiry_date=self.ed_expiry.text().strip() or None,
            price=float(self.sp_price.value()) or None,
            contract_start=self._details.contract_start,
            contract_end=self._details.contract_end,
        )
        return el, details

    @classmethod
    def edit(cls, element: Element, details: Optional[LeasingDetails] = None,
             parent=None, **kwargs) -> Optional[Tuple[Element, LeasingDetails]]:
        dlg = cls(element, details, parent=parent, **kwargs)
        if dlg.exec() != QDialog.Accepted:
            return None
        return dlg.result_values()
