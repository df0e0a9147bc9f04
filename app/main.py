"""
Streamlit Frontend for the Festival Fund

This is the screen the festival committee uses: the treasurer records
contributions and expenses, and anyone can check the balance and who has
not paid yet.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Money figures always come from the ledger, never from the page
3. Clear error messages in simple language
4. A degraded dashboard is shown with a warning, not hidden
"""

import asyncio
from datetime import date

import streamlit as st

from festival_fund.audit import create_correlation_id
from festival_fund.config import get_settings, validate_all_settings
from festival_fund.models.documents import family_from_document, festival_from_document
from festival_fund.models.entities import ExpenseCategory, PaymentStatus
from festival_fund.orchestrator import AppComponents, create_app_components
from festival_fund.services.storage import FAMILIES, FESTIVALS, StorageError
from festival_fund.validation import ValidationError


# Page configuration
st.set_page_config(
    page_title="Festival Fund",
    page_icon="🪔",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One loop for the session, so store locks stay bound to it."""
    return asyncio.new_event_loop()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = get_event_loop()
    asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def money(amount) -> str:
    return f"{get_settings().app.currency_symbol}{amount:,.2f}"


def load_choices(components: AppComponents):
    """Active families and festivals for the select boxes."""
    family_docs = run_async(components.store.get_all(FAMILIES))
    festival_docs = run_async(components.store.get_all(FESTIVALS))
    families = [
        f for f in map(family_from_document, family_docs) if f.is_active
    ]
    festivals = [
        f for f in map(festival_from_document, festival_docs) if f.is_active
    ]
    families.sort(key=lambda f: f.head_name.lower())
    festivals.sort(key=lambda f: f.date)
    return families, festivals


def main():
    """Main application entry point."""
    components = get_components()

    # Sidebar navigation
    st.sidebar.title("🪔 Festival Fund")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "📊 Dashboard",
            "📋 Festival Report",
            "💵 Record Payment",
            "🧾 Record Expense",
            "📒 Transactions",
            "⚙️ Settings",
        ],
        index=0,
    )

    if components.sheets_client is None:
        st.sidebar.warning("Google Sheets not configured. Data is kept in memory only.")

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(components)
    elif page == "📋 Festival Report":
        render_report_page(components)
    elif page == "💵 Record Payment":
        render_payment_page(components)
    elif page == "🧾 Record Expense":
        render_expense_page(components)
    elif page == "📒 Transactions":
        render_transactions_page(components)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_dashboard_page(components: AppComponents):
    st.title("📊 Dashboard")

    snapshot = run_async(components.dashboard.get_snapshot())

    if snapshot.is_degraded:
        st.warning(
            "Some figures could not be loaded and are shown as zero: "
            + ", ".join(snapshot.degraded_sections)
        )

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Current Balance", money(snapshot.current_balance))
    col2.metric("Collected This Year", money(snapshot.total_collection_this_year))
    col3.metric("Spent This Year", money(snapshot.total_expense_this_year))
    col4.metric("Pending Payments", snapshot.pending_payments)

    col1, col2, col3 = st.columns(3)
    col1.metric("Active Families", f"{snapshot.active_families} / {snapshot.total_families}")
    col2.metric("Active Festivals", f"{snapshot.active_festivals} / {snapshot.total_festivals}")
    col3.metric("Upcoming Festivals", snapshot.upcoming_festivals)

    st.markdown("### Upcoming Festivals")
    if snapshot.upcoming_festivals_list:
        st.table([
            {
                "Festival": f.name,
                "Date": f.date.strftime("%d %B %Y"),
                "Per Family": money(f.amount_per_family),
            }
            for f in snapshot.upcoming_festivals_list
        ])
    else:
        st.info("No upcoming festivals.")

    st.markdown("### Recent Transactions")
    if snapshot.recent_transactions:
        st.table([
            {
                "Date": t.date.strftime("%d %b %Y"),
                "Type": t.type.value,
                "Amount": money(t.amount),
                "Balance": money(t.balance_after),
                "Description": t.description,
            }
            for t in snapshot.recent_transactions
        ])
    else:
        st.info("No transactions yet.")


def render_report_page(components: AppComponents):
    st.title("📋 Festival Report")

    _, festivals = load_choices(components)
    if not festivals:
        st.info("No active festivals.")
        return

    festival = st.selectbox(
        "Festival",
        options=festivals,
        format_func=lambda f: f"{f.name} ({f.date.strftime('%d %b %Y')})",
    )

    try:
        report = run_async(components.reports.build_festival_report(festival.id))
        unpaid = run_async(components.reports.list_unpaid_families(festival.id))
    except StorageError as e:
        st.error(f"Could not build the report: {e}")
        return

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Families Paid", f"{report.paid_families} / {report.total_families}")
    col2.metric("Collected", money(report.collected_amount))
    col3.metric("Expected", money(report.total_amount))
    col4.metric("Pending", money(report.pending_amount))

    st.progress(min(report.collection_percentage, 100) / 100)
    st.caption(f"{report.collection_percentage}% collected")

    st.markdown("### Payments")
    st.table([
        {
            "Family": row.family_name,
            "Amount": money(row.amount),
            "Date": row.paid_date.strftime("%d %b %Y"),
            "Status": row.status.value,
            "Receipt": row.receipt_number or "",
        }
        for row in report.payments
    ])

    st.markdown("### Not Yet Paid")
    for family in unpaid:
        st.markdown(f"- {family.head_name} {family.phone or ''}")


def render_payment_page(components: AppComponents):
    st.title("💵 Record Payment")

    families, festivals = load_choices(components)
    if not families or not festivals:
        st.info("Add families and festivals before recording payments.")
        return

    with st.form("payment_form"):
        family = st.selectbox("Family", families, format_func=lambda f: f.head_name)
        festival = st.selectbox("Festival", festivals, format_func=lambda f: f.name)
        amount = st.number_input(
            "Amount",
            min_value=0.0,
            value=float(festival.amount_per_family),
            step=10.0,
        )
        paid_date = st.date_input("Date", value=date.today())
        status = st.selectbox("Status", list(PaymentStatus), format_func=lambda s: s.value)
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("💾 Save Payment", type="primary")

    if submitted:
        try:
            payment = run_async(
                components.payments.record_payment(
                    family_id=family.id,
                    festival_id=festival.id,
                    amount=amount,
                    paid_date=paid_date,
                    status=status,
                    notes=notes or None,
                    correlation_id=create_correlation_id(),
                )
            )
        except ValidationError as e:
            st.error(e.message)
            return
        except StorageError as e:
            st.error(f"Could not save the payment: {e}")
            return

        st.markdown(f"""
        <div class="success-box">
            <h3>✅ Payment Saved</h3>
            <p><strong>Family:</strong> {family.head_name}</p>
            <p><strong>Amount:</strong> {money(payment.amount)}</p>
            <p><strong>Receipt No:</strong> {payment.receipt_number}</p>
        </div>
        """, unsafe_allow_html=True)


def render_expense_page(components: AppComponents):
    st.title("🧾 Record Expense")

    with st.form("expense_form"):
        purpose = st.text_input("Purpose")
        category = st.selectbox(
            "Category",
            list(ExpenseCategory),
            format_func=lambda c: c.value.replace("_", " ").title(),
        )
        amount = st.number_input("Amount", min_value=0.0, step=10.0)
        expense_date = st.date_input("Date", value=date.today())
        paid_to = st.text_input("Paid To")
        contact_number = st.text_input("Contact Number")
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("💾 Save Expense", type="primary")

    if submitted:
        try:
            expense = run_async(
                components.expenses.record_expense(
                    purpose=purpose,
                    category=category,
                    amount=amount,
                    expense_date=expense_date,
                    paid_to=paid_to,
                    contact_number=contact_number or None,
                    notes=notes or None,
                    correlation_id=create_correlation_id(),
                )
            )
        except ValidationError as e:
            st.error(e.message)
            return
        except StorageError as e:
            st.error(f"Could not save the expense: {e}")
            return

        st.success(f"✅ Expense saved: {expense.purpose} ({money(expense.amount)})")


def render_transactions_page(components: AppComponents):
    st.title("📒 Transactions")

    account = run_async(components.ledger.find_account())
    if account is None:
        st.info("No transactions yet. The account opens with the first payment or expense.")
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Balance", money(account.balance))
    col2.metric("Total Income", money(account.total_income))
    col3.metric("Total Expense", money(account.total_expense))

    limit = st.slider("Show", min_value=10, max_value=200, value=50, step=10)
    transactions = run_async(components.ledger.get_recent_transactions(limit))
    if not transactions:
        st.info("No transactions yet.")
        return

    st.table([
        {
            "Reference": t.id,
            "Date": t.date.strftime("%d %b %Y"),
            "Type": t.type.value,
            "Amount": money(t.amount),
            "Before": money(t.balance_before),
            "After": money(t.balance_after),
            "Description": t.description,
        }
        for t in transactions
    ])


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    sections = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Ledger", "ledger"),
        ("Dashboard", "dashboard"),
        ("Application", "app"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
