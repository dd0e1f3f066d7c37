"""Main GUI window for the brokerage console."""

from __future__ import annotations

from functools import partial
from typing import Any, Callable

from PySide6.QtCore import QThreadPool
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStackedWidget,
    QTableWidget,
    QTableWidgetItem,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from broker_console.core.errors import ValidationError
from broker_console.core.validation import parse_date
from broker_console.models.customer import DerivedCustomer
from broker_console.models.forms import (
    SET_CUSTOMER_FIELD,
    SET_FIELD,
    TOGGLE_MODE,
    AuthForm,
    CustomerForm,
    FormAction,
    LedgerForm,
    PolicyForm,
    reduce_auth_form,
    reduce_customer_form,
    reduce_ledger_form,
    reduce_policy_form,
)
from broker_console.models.ledger import LedgerEntry, LedgerType
from broker_console.models.policy import Policy, PolicyType
from broker_console.models.results import BatchResult
from broker_console.repositories.identity import LocalIdentityService
from broker_console.services.aggregator import DateRange, dashboard_summary, financial_report
from broker_console.services.customer_deriver import derive_customers
from broker_console.services.filtering import (
    ALL,
    NO,
    YES,
    LedgerFilter,
    PolicyFilter,
    SortState,
    filter_and_sort_policies,
    filter_ledger_entries,
    linked_ledger_entries,
)
from broker_console.services.mutation_gateway import (
    DELETE_LEDGER_WARNING,
    DELETE_POLICY_WARNING,
    MutationGateway,
)
from broker_console.services.record_store import USER_CHANGED, RecordStore
from broker_console.ui.tasks import SnapshotBridge, StoreCallTask

CUSTOMER_LABELS = {
    "first_name": "First Name*",
    "last_name": "Last Name*",
    "phone_number": "Phone Number",
    "id_number": "ID Number",
    "address": "Address",
    "city": "City",
    "postal_code": "Postal Code",
}

POLICY_COLUMNS = [
    ("Policy #", "policyNumber"),
    ("Customer", "customer"),
    ("Type", "policyType"),
    ("Total", "totalAmount"),
    ("Policy Date", "policyDate"),
    ("Valid Until", "validUntil"),
    ("Created", "createdAt"),
    ("Paid by Customer", None),
    ("Paid to Insurer", None),
]


def _date_text(value: Any) -> str:
    return value.isoformat()[:10] if value else ""


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def _fill_table(table: QTableWidget, rows: list[list[str]]) -> None:
    table.setRowCount(len(rows))
    for row_index, row in enumerate(rows):
        for col_index, value in enumerate(row):
            table.setItem(row_index, col_index, QTableWidgetItem(value))


class CustomerFormWidget(QWidget):
    """Customer fields backed by an immutable CustomerForm."""

    def __init__(self, lock_id_number: bool = False):
        super().__init__()
        self.state = CustomerForm()
        self.inputs: dict[str, QLineEdit] = {}
        layout = QFormLayout(self)
        for name, label in CUSTOMER_LABELS.items():
            widget = QLineEdit()
            widget.textChanged.connect(partial(self._on_text, name))
            if name == "id_number" and lock_id_number:
                widget.setReadOnly(True)
            self.inputs[name] = widget
            layout.addRow(label, widget)

    def _on_text(self, name: str, text: str) -> None:
        self.state = reduce_customer_form(self.state, FormAction(SET_FIELD, name, text))

    def load(self, form: CustomerForm) -> None:
        self.state = form
        for name, widget in self.inputs.items():
            widget.blockSignals(True)
            widget.setText(getattr(form, name))
            widget.blockSignals(False)


class PolicyFormWidget(QWidget):
    """Policy and customer fields backed by an immutable PolicyForm."""

    TEXT_FIELDS = {
        "policy_number": "Policy Number*",
        "policy_date": "Policy Date* (YYYY-MM-DD)",
        "valid_until": "Valid Until* (YYYY-MM-DD)",
        "total_amount": "Total Amount*",
        "commission": "Commission",
        "vehicle_number": "Vehicle Number",
        "insurance_type": "Insurance Type",
    }

    def __init__(self, lock_id_number: bool = False):
        super().__init__()
        self.state = PolicyForm()
        layout = QVBoxLayout(self)

        policy_form = QFormLayout()
        self.type_input = QComboBox()
        self.type_input.addItems([item.value for item in PolicyType])
        self.type_input.currentTextChanged.connect(partial(self._dispatch, SET_FIELD, "policy_type"))
        policy_form.addRow("Policy Type", self.type_input)

        self.text_inputs: dict[str, QLineEdit] = {}
        for name, label in self.TEXT_FIELDS.items():
            widget = QLineEdit()
            widget.textChanged.connect(partial(self._dispatch, SET_FIELD, name))
            self.text_inputs[name] = widget
            policy_form.addRow(label, widget)

        self.paid_by_customer_input = QCheckBox("Paid by Customer")
        self.paid_by_customer_input.toggled.connect(
            partial(self._dispatch, SET_FIELD, "paid_by_customer")
        )
        self.paid_to_insurer_input = QCheckBox("Paid to Insurer")
        self.paid_to_insurer_input.toggled.connect(
            partial(self._dispatch, SET_FIELD, "paid_to_insurer")
        )
        flags = QHBoxLayout()
        flags.addWidget(self.paid_by_customer_input)
        flags.addWidget(self.paid_to_insurer_input)
        policy_form.addRow(flags)

        customer_form = QFormLayout()
        self.customer_inputs: dict[str, QLineEdit] = {}
        for name, label in CUSTOMER_LABELS.items():
            widget = QLineEdit()
            widget.textChanged.connect(partial(self._dispatch, SET_CUSTOMER_FIELD, name))
            if name == "id_number" and lock_id_number:
                widget.setReadOnly(True)
            self.customer_inputs[name] = widget
            customer_form.addRow(label, widget)

        layout.addLayout(policy_form)
        layout.addWidget(QLabel("Customer Details"))
        layout.addLayout(customer_form)

    def _dispatch(self, kind: str, name: str, value: Any) -> None:
        self.state = reduce_policy_form(self.state, FormAction(kind, name, value))

    def load(self, form: PolicyForm) -> None:
        self.state = form
        widgets: list[QWidget] = [
            self.type_input,
            self.paid_by_customer_input,
            self.paid_to_insurer_input,
            *self.text_inputs.values(),
            *self.customer_inputs.values(),
        ]
        for widget in widgets:
            widget.blockSignals(True)
        self.type_input.setCurrentText(form.policy_type)
        for name, widget in self.text_inputs.items():
            widget.setText(getattr(form, name))
        for name, widget in self.customer_inputs.items():
            widget.setText(getattr(form.customer, name))
        self.paid_by_customer_input.setChecked(form.paid_by_customer)
        self.paid_to_insurer_input.setChecked(form.paid_to_insurer)
        for widget in widgets:
            widget.blockSignals(False)


class EditDialog(QDialog):
    """Modal wrapper around a form widget with Save/Cancel buttons."""

    def __init__(self, parent: QWidget, title: str, body: QWidget):
        super().__init__(parent)
        self.setWindowTitle(title)
        layout = QVBoxLayout(self)
        layout.addWidget(body)
        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)


class MainWindow(QMainWindow):
    """Sign-in screen plus dashboard, policy, ledger, report, and customer tabs."""

    def __init__(
        self,
        identity: LocalIdentityService,
        records: RecordStore,
        gateway: MutationGateway,
        currency: str,
    ):
        super().__init__()
        self.identity = identity
        self.records = records
        self.gateway = gateway
        self.currency = currency
        self.thread_pool = QThreadPool.globalInstance()

        self.auth_state = AuthForm()
        self.ledger_state = LedgerForm()
        self.sort_state = SortState()
        self._visible_policies: list[Policy] = []
        self._visible_entries: list[LedgerEntry] = []
        self._customers: list[DerivedCustomer] = []

        self.setWindowTitle("Insurance Broker Console")
        self.resize(1400, 900)

        self.pages = QStackedWidget()
        self.pages.addWidget(self._build_auth_page())
        self.pages.addWidget(self._build_console_page())
        self.setCentralWidget(self.pages)

        self.bridge = SnapshotBridge()
        self.bridge.changed.connect(self._on_records_changed)
        self._records_listener = self.records.add_listener(self.bridge.forward)
        self.records.start()

    # -- layout -----------------------------------------------------------

    def _build_auth_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        form = QFormLayout()
        self.email_input = QLineEdit()
        self.email_input.textChanged.connect(partial(self._dispatch_auth, "email"))
        self.password_input = QLineEdit()
        self.password_input.setEchoMode(QLineEdit.EchoMode.Password)
        self.password_input.textChanged.connect(partial(self._dispatch_auth, "password"))
        self.password_input.returnPressed.connect(self.submit_auth)
        form.addRow("Email", self.email_input)
        form.addRow("Password", self.password_input)

        self.auth_submit_button = QPushButton("Login")
        self.auth_submit_button.clicked.connect(self.submit_auth)
        self.auth_toggle_button = QPushButton("Need an account? Register")
        self.auth_toggle_button.clicked.connect(self.toggle_auth_mode)
        self.auth_message = QLabel("")

        layout.addStretch()
        layout.addLayout(form)
        layout.addWidget(self.auth_submit_button)
        layout.addWidget(self.auth_toggle_button)
        layout.addWidget(self.auth_message)
        layout.addStretch()
        return page

    def _build_console_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        header = QHBoxLayout()
        self.user_label = QLabel("")
        logout_button = QPushButton("Logout")
        logout_button.clicked.connect(self.logout)
        header.addWidget(self.user_label)
        header.addStretch()
        header.addWidget(logout_button)

        self.tabs = QTabWidget()
        self._build_dashboard_tab()
        self._build_add_policy_tab()
        self._build_policies_tab()
        self._build_ledger_tab()
        self._build_reports_tab()
        self._build_customers_tab()

        layout.addLayout(header)
        layout.addWidget(self.tabs)
        return page

    def _build_dashboard_tab(self) -> None:
        tab = QWidget()
        grid = QGridLayout(tab)
        self.dashboard_labels: dict[str, QLabel] = {}
        cards = [
            ("total_policies", "Total Policies"),
            ("total_policy_value", "Total Policy Value"),
            ("total_commission", "Total Commission (Profit)"),
            ("overdue_count", "Overdue Policies"),
            ("paid_by_customer_count", "Paid by Customer"),
            ("paid_to_insurer_count", "Paid to Insurer"),
        ]
        for index, (key, title) in enumerate(cards):
            value_label = QLabel("0")
            self.dashboard_labels[key] = value_label
            grid.addWidget(QLabel(title), (index // 3) * 2, index % 3)
            grid.addWidget(value_label, (index // 3) * 2 + 1, index % 3)
        self.tabs.addTab(tab, "Dashboard")

    def _build_add_policy_tab(self) -> None:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        self.add_policy_form = PolicyFormWidget()
        add_button = QPushButton("Add Policy")
        add_button.clicked.connect(self.add_policy)
        layout.addWidget(self.add_policy_form)
        layout.addWidget(add_button)
        layout.addStretch()
        self.tabs.addTab(tab, "Add Policy")

    def _build_policies_tab(self) -> None:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        filters = QHBoxLayout()
        self.filter_type_input = QLineEdit()
        self.filter_type_input.setPlaceholderText("Policy type")
        self.filter_customer_input = QLineEdit()
        self.filter_customer_input.setPlaceholderText("Customer name")
        self.filter_number_input = QLineEdit()
        self.filter_number_input.setPlaceholderText("Policy number")
        self.filter_valid_from_input = QLineEdit()
        self.filter_valid_from_input.setPlaceholderText("Valid from YYYY-MM-DD")
        self.filter_valid_to_input = QLineEdit()
        self.filter_valid_to_input.setPlaceholderText("Valid to YYYY-MM-DD")
        self.filter_paid_by_customer = self._paid_filter_combo()
        self.filter_paid_to_insurer = self._paid_filter_combo()

        for widget in [
            self.filter_type_input,
            self.filter_customer_input,
            self.filter_number_input,
            self.filter_valid_from_input,
            self.filter_valid_to_input,
        ]:
            widget.textChanged.connect(self.render_policies)
            filters.addWidget(widget)
        filters.addWidget(QLabel("Paid by customer"))
        filters.addWidget(self.filter_paid_by_customer)
        filters.addWidget(QLabel("Paid to insurer"))
        filters.addWidget(self.filter_paid_to_insurer)

        self.policies_table = QTableWidget(0, len(POLICY_COLUMNS))
        self.policies_table.setHorizontalHeaderLabels([title for title, _ in POLICY_COLUMNS])
        self.policies_table.horizontalHeader().sectionClicked.connect(self._on_policy_header_clicked)
        self.policies_table.cellClicked.connect(self._on_policy_row_selected)

        buttons = QHBoxLayout()
        edit_button = QPushButton("Edit Policy")
        edit_button.clicked.connect(self.edit_policy)
        delete_button = QPushButton("Delete Policy")
        delete_button.clicked.connect(self.delete_policy)
        buttons.addWidget(edit_button)
        buttons.addWidget(delete_button)
        buttons.addStretch()

        self.linked_entries_table = QTableWidget(0, 4)
        self.linked_entries_table.setHorizontalHeaderLabels(["Type", "Date", "Amount", "Reason"])

        layout.addLayout(filters)
        layout.addWidget(self.policies_table)
        layout.addLayout(buttons)
        layout.addWidget(QLabel("Payments and expenses linked to the selected policy"))
        layout.addWidget(self.linked_entries_table)
        self.tabs.addTab(tab, "Policies")

    def _build_ledger_tab(self) -> None:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        form = QFormLayout()
        self.ledger_type_input = QComboBox()
        self.ledger_type_input.addItems([item.value for item in LedgerType])
        self.ledger_type_input.currentTextChanged.connect(partial(self._dispatch_ledger, "type"))
        self.ledger_date_input = QLineEdit()
        self.ledger_date_input.setPlaceholderText("YYYY-MM-DD")
        self.ledger_date_input.textChanged.connect(partial(self._dispatch_ledger, "date"))
        self.ledger_amount_input = QLineEdit()
        self.ledger_amount_input.textChanged.connect(partial(self._dispatch_ledger, "amount"))
        self.ledger_reason_input = QLineEdit()
        self.ledger_reason_input.textChanged.connect(partial(self._dispatch_ledger, "reason"))
        self.ledger_policy_input = QComboBox()
        self.ledger_policy_input.currentIndexChanged.connect(self._on_ledger_policy_selected)
        form.addRow("Type*", self.ledger_type_input)
        form.addRow("Date*", self.ledger_date_input)
        form.addRow("Amount*", self.ledger_amount_input)
        form.addRow("Reason", self.ledger_reason_input)
        form.addRow("Linked Policy", self.ledger_policy_input)

        buttons = QHBoxLayout()
        add_button = QPushButton("Submit")
        add_button.clicked.connect(self.add_ledger_entry)
        delete_button = QPushButton("Delete Entry")
        delete_button.clicked.connect(self.delete_ledger_entry)
        self.ledger_filter_type = QComboBox()
        self.ledger_filter_type.addItem("All", ALL)
        for item in LedgerType:
            self.ledger_filter_type.addItem(item.value, item.value)
        self.ledger_filter_type.currentIndexChanged.connect(self.render_ledger_entries)
        buttons.addWidget(add_button)
        buttons.addWidget(delete_button)
        buttons.addStretch()
        buttons.addWidget(QLabel("Show"))
        buttons.addWidget(self.ledger_filter_type)

        self.ledger_table = QTableWidget(0, 5)
        self.ledger_table.setHorizontalHeaderLabels(["Type", "Date", "Amount", "Reason", "Policy #"])

        layout.addLayout(form)
        layout.addLayout(buttons)
        layout.addWidget(self.ledger_table)
        self.tabs.addTab(tab, "Payments & Expenses")

    def _build_reports_tab(self) -> None:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        window = QHBoxLayout()
        self.report_start_input = QLineEdit()
        self.report_start_input.setPlaceholderText("From YYYY-MM-DD")
        self.report_end_input = QLineEdit()
        self.report_end_input.setPlaceholderText("To YYYY-MM-DD")
        apply_button = QPushButton("Apply")
        apply_button.clicked.connect(lambda: self.render_report())
        window.addWidget(self.report_start_input)
        window.addWidget(self.report_end_input)
        window.addWidget(apply_button)

        grid = QGridLayout()
        self.report_labels: dict[str, QLabel] = {}
        cards = [
            ("total_income", "Total Income"),
            ("total_commission", "Total Commission"),
            ("total_expenses", "Total Expenses"),
            ("total_payments", "Total Payments"),
            ("total_unpaid_to_insurer", "Unpaid to Insurer"),
            ("amount_due_to_insurer", "Amount Due to Insurer"),
        ]
        for index, (key, title) in enumerate(cards):
            value_label = QLabel("")
            self.report_labels[key] = value_label
            grid.addWidget(QLabel(title), (index // 3) * 2, index % 3)
            grid.addWidget(value_label, (index // 3) * 2 + 1, index % 3)
        self.report_counts_label = QLabel("")

        layout.addLayout(window)
        layout.addLayout(grid)
        layout.addWidget(self.report_counts_label)
        layout.addStretch()
        self.tabs.addTab(tab, "Financial Reports")

    def _build_customers_tab(self) -> None:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        self.customers_table = QTableWidget(0, 6)
        self.customers_table.setHorizontalHeaderLabels(
            ["ID Number", "Name", "Phone", "City", "Policies", "Total Value"]
        )
        edit_button = QPushButton("Edit Customer")
        edit_button.clicked.connect(self.edit_customer)
        layout.addWidget(self.customers_table)
        layout.addWidget(edit_button)
        self.tabs.addTab(tab, "Customers")

    @staticmethod
    def _paid_filter_combo() -> QComboBox:
        combo = QComboBox()
        combo.addItem("All", ALL)
        combo.addItem("Yes", YES)
        combo.addItem("No", NO)
        return combo

    # -- form state -------------------------------------------------------

    def _dispatch_auth(self, name: str, value: str) -> None:
        self.auth_state = reduce_auth_form(self.auth_state, FormAction(SET_FIELD, name, value))

    def _dispatch_ledger(self, name: str, value: str) -> None:
        self.ledger_state = reduce_ledger_form(self.ledger_state, FormAction(SET_FIELD, name, value))

    def _on_ledger_policy_selected(self, _index: int) -> None:
        policy_id = self.ledger_policy_input.currentData() or ""
        self._dispatch_ledger("policy_id", policy_id)

    # -- background calls -------------------------------------------------

    def _run(
        self,
        action: str,
        call: Callable[[], Any],
        on_done: Callable[[Any], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        task = StoreCallTask(action, call)
        if on_done is not None:
            task.signals.done.connect(on_done)
        task.signals.error.connect(on_error or self._show_error)
        self.thread_pool.start(task)

    def _show_error(self, message: str) -> None:
        QMessageBox.critical(self, "Error", message)

    def _show_info(self, message: str) -> None:
        QMessageBox.information(self, "Done", message)

    def _show_batch(self, result: BatchResult | None) -> None:
        if result is None:
            return
        if result.ok:
            self._show_info(result.summary())
        else:
            QMessageBox.warning(self, "Incomplete", result.summary())

    def _confirm(self, warning: str) -> bool:
        answer = QMessageBox.question(self, "Please confirm", warning)
        return answer == QMessageBox.StandardButton.Yes

    # -- auth -------------------------------------------------------------

    def toggle_auth_mode(self) -> None:
        self.auth_state = reduce_auth_form(self.auth_state, FormAction(TOGGLE_MODE))
        self.password_input.blockSignals(True)
        self.password_input.clear()
        self.password_input.blockSignals(False)
        if self.auth_state.is_login:
            self.auth_submit_button.setText("Login")
            self.auth_toggle_button.setText("Need an account? Register")
        else:
            self.auth_submit_button.setText("Register")
            self.auth_toggle_button.setText("Already have an account? Login")

    def submit_auth(self) -> None:
        state = self.auth_state
        self.auth_message.setText("")
        if state.is_login:
            self._run(
                "logging in",
                lambda: self.identity.login(state.email, state.password),
                lambda _user: self.auth_message.setText("Logged in successfully!"),
                self.auth_message.setText,
            )
        else:
            self._run(
                "registering",
                lambda: self.identity.register(state.email, state.password),
                lambda _user: self.auth_message.setText("Registered and logged in successfully!"),
                self.auth_message.setText,
            )

    def logout(self) -> None:
        self._run(
            "logging out",
            self.identity.logout,
            lambda _result: self.auth_message.setText("Logged out successfully!"),
        )

    # -- mutations --------------------------------------------------------

    def add_policy(self) -> None:
        form = self.add_policy_form.state

        def done(_policy_id: str) -> None:
            self.add_policy_form.load(PolicyForm())
            self._show_info("Policy added successfully!")

        self._run("adding policy", lambda: self.gateway.add_policy(form), done)

    def edit_policy(self) -> None:
        policy = self._selected_policy()
        if policy is None:
            self._show_error("Select a policy to edit.")
            return
        body = PolicyFormWidget(lock_id_number=True)
        body.load(PolicyForm.from_policy(policy))
        dialog = EditDialog(self, f"Edit Policy {policy.policy_number}", body)
        if dialog.exec() != QDialog.DialogCode.Accepted:
            return
        form = body.state
        self._run(
            "updating policy",
            lambda: self.gateway.update_policy(policy.id, form),
            lambda _result: self._show_info("Policy updated successfully!"),
        )

    def delete_policy(self) -> None:
        policy = self._selected_policy()
        if policy is None:
            self._show_error("Select a policy to delete.")
            return
        if not self._confirm(DELETE_POLICY_WARNING):
            return
        self._run(
            "deleting policy",
            lambda: self.gateway.delete_policy(policy.id, lambda _warning: True),
            self._show_batch,
        )

    def add_ledger_entry(self) -> None:
        form = self.ledger_state

        def done(_entry_id: str) -> None:
            for widget in [
                self.ledger_date_input,
                self.ledger_amount_input,
                self.ledger_reason_input,
            ]:
                widget.clear()
            self.ledger_policy_input.setCurrentIndex(0)
            self._show_info(f"{form.type} added successfully!")

        self._run("adding payment/expense", lambda: self.gateway.add_ledger_entry(form), done)

    def delete_ledger_entry(self) -> None:
        row = self.ledger_table.currentRow()
        if row < 0 or row >= len(self._visible_entries):
            self._show_error("Select an entry to delete.")
            return
        entry = self._visible_entries[row]
        if not self._confirm(DELETE_LEDGER_WARNING):
            return
        self._run(
            "deleting payment/expense",
            lambda: self.gateway.delete_ledger_entry(entry.id, lambda _warning: True),
        )

    def edit_customer(self) -> None:
        row = self.customers_table.currentRow()
        if row < 0 or row >= len(self._customers):
            self._show_error("Select a customer to edit.")
            return
        customer = self._customers[row]
        body = CustomerFormWidget(lock_id_number=True)
        body.load(CustomerForm.from_customer(customer))
        dialog = EditDialog(self, f"Edit Customer {customer.full_name}", body)
        if dialog.exec() != QDialog.DialogCode.Accepted:
            return
        form = body.state
        self._run(
            "updating customer",
            lambda: self.gateway.update_customer_across_policies(customer.id_number, form),
            self._show_batch,
        )

    # -- rendering --------------------------------------------------------

    def _on_records_changed(self, change: str) -> None:
        if change == USER_CHANGED:
            user = self.records.user
            self.pages.setCurrentIndex(1 if user else 0)
            self.user_label.setText(f"Signed in as {user.email}" if user else "")
        self.render_all()

    def render_all(self) -> None:
        self.render_dashboard()
        self.render_policies()
        self.render_ledger_entries()
        self.render_report(notify=False)
        self.render_customers()

    def _money(self, amount: Any) -> str:
        return f"{self.currency} {amount:.2f}"

    def render_dashboard(self) -> None:
        summary = dashboard_summary(self.records.policies)
        for key, label in self.dashboard_labels.items():
            value = getattr(summary, key)
            if key in ("total_policy_value", "total_commission"):
                label.setText(self._money(value))
            else:
                label.setText(str(value))

    def _current_policy_filter(self) -> PolicyFilter:
        return PolicyFilter(
            policy_type=self.filter_type_input.text().strip(),
            customer_name=self.filter_customer_input.text().strip(),
            policy_number=self.filter_number_input.text().strip(),
            paid_by_customer=self.filter_paid_by_customer.currentData() or ALL,
            paid_to_insurer=self.filter_paid_to_insurer.currentData() or ALL,
            valid_from=parse_date(self.filter_valid_from_input.text()),
            valid_to=parse_date(self.filter_valid_to_input.text()),
        )

    def render_policies(self, *_args: Any) -> None:
        self._visible_policies = filter_and_sort_policies(
            self.records.policies, self._current_policy_filter(), self.sort_state
        )
        rows = [
            [
                policy.policy_number,
                policy.customer.full_name if policy.customer else "",
                policy.policy_type,
                self._money(policy.total_amount),
                _date_text(policy.policy_date),
                _date_text(policy.valid_until),
                _date_text(policy.created_at),
                _yes_no(policy.paid_by_customer),
                _yes_no(policy.paid_to_insurer),
            ]
            for policy in self._visible_policies
        ]
        _fill_table(self.policies_table, rows)
        self.linked_entries_table.setRowCount(0)

    def _on_policy_header_clicked(self, column: int) -> None:
        key = POLICY_COLUMNS[column][1]
        if key is None:
            return
        self.sort_state = self.sort_state.select(key)
        self.render_policies()

    def _selected_policy(self) -> Policy | None:
        row = self.policies_table.currentRow()
        if row < 0 or row >= len(self._visible_policies):
            return None
        return self._visible_policies[row]

    def _on_policy_row_selected(self, row: int, _column: int) -> None:
        if row >= len(self._visible_policies):
            return
        entries = linked_ledger_entries(self.records.ledger_entries, self._visible_policies[row].id)
        _fill_table(
            self.linked_entries_table,
            [
                [entry.type, _date_text(entry.date), self._money(entry.amount), entry.reason or ""]
                for entry in entries
            ],
        )

    def render_ledger_entries(self, *_args: Any) -> None:
        numbers = {policy.id: policy.policy_number for policy in self.records.policies}
        ledger_filter = LedgerFilter(type=self.ledger_filter_type.currentData() or ALL)
        self._visible_entries = filter_ledger_entries(self.records.ledger_entries, ledger_filter)
        _fill_table(
            self.ledger_table,
            [
                [
                    entry.type,
                    _date_text(entry.date),
                    self._money(entry.amount),
                    entry.reason or "",
                    numbers.get(entry.policy_id or "", ""),
                ]
                for entry in self._visible_entries
            ],
        )

        selected = self.ledger_policy_input.currentData()
        self.ledger_policy_input.blockSignals(True)
        self.ledger_policy_input.clear()
        self.ledger_policy_input.addItem("Not linked", "")
        for policy in self.records.policies:
            self.ledger_policy_input.addItem(policy.policy_number, policy.id)
        index = self.ledger_policy_input.findData(selected) if selected else 0
        self.ledger_policy_input.setCurrentIndex(max(index, 0))
        self.ledger_policy_input.blockSignals(False)
        self._on_ledger_policy_selected(self.ledger_policy_input.currentIndex())

    def _report_range(self) -> DateRange | None:
        start_text = self.report_start_input.text().strip()
        end_text = self.report_end_input.text().strip()
        if not start_text and not end_text:
            return None
        start = parse_date(start_text)
        end = parse_date(end_text)
        if start is None or end is None:
            raise ValidationError("Report window needs both dates in YYYY-MM-DD format.")
        return DateRange(start=start, end=end)

    def render_report(self, notify: bool = True) -> None:
        try:
            date_range = self._report_range()
        except ValidationError as error:
            if notify:
                self._show_error(str(error))
            return
        report = financial_report(self.records.policies, self.records.ledger_entries, date_range)
        for key, label in self.report_labels.items():
            label.setText(self._money(getattr(report, key)))
        self.report_counts_label.setText(
            f"From {report.policy_count} policies and {report.ledger_entry_count} payments/expenses"
        )

    def render_customers(self) -> None:
        self._customers = derive_customers(self.records.policies)
        _fill_table(
            self.customers_table,
            [
                [
                    customer.id_number,
                    customer.full_name,
                    customer.phone_number,
                    customer.city,
                    str(customer.policies_count),
                    self._money(customer.total_policy_value),
                ]
                for customer in self._customers
            ],
        )

    def closeEvent(self, event: Any) -> None:  # noqa: N802 (Qt override)
        self._records_listener.cancel()
        super().closeEvent(event)
