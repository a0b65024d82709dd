from __future__ import annotations

from datetime import date
from pathlib import Path

import plotly.graph_objects as go
import streamlit as st

from perfboard.config.loader import ConfigLoader
from perfboard.config.log_setup import setup_logging
from perfboard.config.schemas import DashboardConfig, Standards
from perfboard.config.validation import RuntimeValidator
from perfboard.core.aggregation import AggregationEngine, ChartPoint, SortDirection, SortKey
from perfboard.core.dashboard import DashboardQuery, build_dashboard
from perfboard.core.entries import Entry
from perfboard.core.entry_service import EntryService, LoadResult, Notice, NoticeLevel


CONFIG_PATH = Path("config") / "dashboard.yaml"

CHART_LABELS = {
    "websites": "官网",
    "orders": "订单",
    "mainProducts": "主产品",
    "acCount": "AC",
    "met": "达标",
    "missed": "未达标",
    "converted": "转化率",
    "unconverted": "未转化",
}

SORT_LABELS = {
    SortKey.NAME: "姓名",
    SortKey.DATE: "日期",
    SortKey.WEBSITES: "官网",
    SortKey.ORDERS: "订单",
    SortKey.MAIN_PRODUCTS: "主产品",
    SortKey.AC_COUNT: "AC数量",
    SortKey.TBT_AMOUNT: "BTB",
    SortKey.CR: "CR",
    SortKey.AC: "AC占比",
}


@st.cache_data(show_spinner=False)
def load_config() -> tuple[DashboardConfig, list[str]]:
    warnings: list[str] = []
    try:
        config = ConfigLoader.load_or_default(CONFIG_PATH)
    except Exception as exc:  # noqa: BLE001
        warnings.append(f"dashboard.yaml 错误: {exc}")
        config = DashboardConfig.default()

    if not CONFIG_PATH.exists():
        warnings.append("config/dashboard.yaml 未找到，使用默认配置")

    for report in (RuntimeValidator.validate_storage(config), RuntimeValidator.validate_safeguards(config)):
        warnings.extend(report.errors)
        warnings.extend(report.warnings)
    return config, warnings


def show_notice(notice: Notice | None) -> None:
    if notice is None:
        return
    render = {
        NoticeLevel.SUCCESS: st.success,
        NoticeLevel.INFO: st.info,
        NoticeLevel.WARNING: st.warning,
        NoticeLevel.ERROR: st.error,
    }[notice.level]
    render(notice.message)


def bar_figure(points: list[ChartPoint], color: str) -> go.Figure:
    figure = go.Figure(
        go.Bar(
            x=[CHART_LABELS.get(point.key, point.key) for point in points],
            y=[point.value for point in points],
            marker_color=color,
        )
    )
    figure.update_layout(height=280, margin=dict(l=10, r=10, t=10, b=10))
    return figure


def pie_figure(points: list[ChartPoint], colors: list[str]) -> go.Figure:
    figure = go.Figure(
        go.Pie(
            labels=[CHART_LABELS.get(point.key, point.key) for point in points],
            values=[max(point.value, 0) for point in points],
            hole=0.6,
            marker=dict(colors=colors),
        )
    )
    figure.update_layout(height=280, margin=dict(l=10, r=10, t=10, b=10))
    return figure


def render_sidebar(config: DashboardConfig, warnings: list[str]) -> Standards:
    with st.sidebar:
        st.title("⚙️ 绩效标准设置")

        if st.button("🔄 重新加载配置"):
            st.cache_data.clear()
            st.rerun()

        st.caption(f"存储: {config.storage.slot_path}")
        for warning in warnings:
            st.warning(f"⚠️ {warning}")

        st.divider()
        st.caption("标准仅在当前会话中生效，不会保存。")
        cr = st.number_input("CR标准(%)", min_value=0.0, value=float(config.standards.cr), step=1.0)
        ac = st.number_input("AC占比标准(%)", min_value=0.0, value=float(config.standards.ac), step=1.0)
        tbt = st.number_input("BTB标准(元)", min_value=0.0, value=float(config.standards.tbt), step=100.0)
    return Standards(cr=cr, ac=ac, tbt=tbt)


def render_home_tab(loaded: LoadResult, engine: AggregationEngine) -> None:
    st.header("数据看板")
    if not loaded.entries:
        show_notice(loaded.notice)
        return

    merged = engine.merge(loaded.entries)
    summary = engine.summarize(merged)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("总人数", summary.total_users)
    col2.metric("平均CR", f"{summary.avg_cr:.1f}%")
    col3.metric("平均AC", f"{summary.avg_ac:.1f}%")
    col4.metric("总BTB", f"¥{summary.total_amount:,.0f}")
    st.plotly_chart(bar_figure(engine.bar_chart(summary), "#8884d8"), use_container_width=True)


ENTRY_FIELDS = {
    "entry_websites": 0,
    "entry_orders": 0,
    "entry_main_products": 0,
    "entry_ac_count": 0,
    "entry_tbt_amount": 0.0,
}


def show_flash(key: str) -> None:
    show_notice(st.session_state.pop(key, None))


def render_input_tab(service: EntryService, engine: AggregationEngine) -> None:
    st.header("数据录入")
    form_col, chart_col = st.columns(2)

    with form_col:
        st.caption(f"当前日期: {date.today().isoformat()}")
        name = st.text_input("姓名", placeholder="请输入姓名", key="entry_name")
        entry_date = st.date_input("日期", value=date.today(), key="entry_date")
        websites = st.number_input("官网数量", min_value=0, step=1, key="entry_websites")
        orders = st.number_input("订单数量", min_value=0, step=1, key="entry_orders")
        main_products = st.number_input("主产品数量", min_value=0, step=1, key="entry_main_products")
        ac_count = st.number_input("AC数量", min_value=0, step=1, key="entry_ac_count")
        tbt_amount = st.number_input("BTB金额", min_value=0.0, step=100.0, key="entry_tbt_amount")
        st.button(
            "💾 保存数据",
            type="primary",
            use_container_width=True,
            on_click=_submit_entry,
            args=(service,),
        )
        show_flash("entry_flash")

    preview = Entry(
        name=name.strip() or "preview",
        date=entry_date,
        websites=int(websites),
        orders=int(orders),
        main_products=int(main_products),
        ac_count=int(ac_count),
        tbt_amount=float(tbt_amount),
    )
    metrics = engine.derive_metrics(preview)
    with chart_col:
        st.subheader(f"转化率: {metrics.cr:.1f}%")
        st.plotly_chart(pie_figure(engine.conversion_split(preview), ["#6366f1", "#374151"]), use_container_width=True)
        st.plotly_chart(bar_figure(engine.entry_breakdown(preview), "#8b5cf6"), use_container_width=True)
        col1, col2 = st.columns(2)
        col1.metric("AC占比", f"{metrics.ac_ratio:.1f}%")
        col2.metric("BTB金额", f"¥{preview.tbt_amount:,.0f}")


def render_details_tab(service: EntryService, loaded: LoadResult, standards: Standards, engine: AggregationEngine) -> None:
    st.header("明细查询")
    show_notice(loaded.notice)
    show_flash("details_flash")

    st.session_state.setdefault("sort_state", None)
    filter_col, date_col, sort_col, flip_col, reset_col = st.columns([3, 2, 2, 1, 1])
    with filter_col:
        name_query = st.text_input("搜索姓名...", key="search_name")
    with date_col:
        use_date = st.checkbox("按日期筛选", key="search_use_date")
        date_query = st.date_input("日期", key="search_date") if use_date else None
    with sort_col:
        st.selectbox(
            "排序",
            options=[None, *SortKey],
            format_func=lambda value: "不排序" if value is None else SORT_LABELS[value],
            key="sort_key_choice",
            on_change=_select_sort,
            args=(engine,),
        )
    with flip_col:
        st.button("⇅", help="切换排序方向", on_click=_flip_sort, args=(engine,))
    with reset_col:
        st.button("🔄", help="重置筛选条件", on_click=_reset_filters)

    view = build_dashboard(
        loaded.entries,
        DashboardQuery(name=name_query, date=date_query, sort=st.session_state["sort_state"]),
        standards,
        engine,
    )

    sort_state = st.session_state["sort_state"]
    if sort_state is not None:
        arrow = "↑" if sort_state.direction == SortDirection.ASC else "↓"
        st.caption(f"排序: {SORT_LABELS[sort_state.key]} {arrow}")
    if name_query and view.suggestions:
        st.caption("姓名建议: " + "、".join(view.suggestions))

    summary = view.summary
    cards = st.columns(6)
    cards[0].metric("总人数", summary.total_users)
    cards[1].metric("总官网", summary.total_websites)
    cards[2].metric("总订单", summary.total_orders)
    cards[3].metric("平均CR", f"{summary.avg_cr:.1f}%")
    cards[4].metric("平均AC", f"{summary.avg_ac:.1f}%")
    cards[5].metric("总BTB", f"¥{summary.total_amount:,.0f}")

    chart_col1, chart_col2 = st.columns(2)
    with chart_col1:
        st.subheader("数据分布")
        st.plotly_chart(bar_figure(view.bar_chart, "#8884d8"), use_container_width=True)
    with chart_col2:
        st.subheader("CR达标情况")
        st.plotly_chart(pie_figure(view.cr_attainment, ["#4ade80", "#f87171"]), use_container_width=True)

    if not view.rows:
        st.info("暂无数据，请先录入数据")
    for row in view.rows:
        record = row.record
        flags = row.classification
        col1, col2, col3, col4, col5, col6, col7 = st.columns([3, 2, 2, 2, 2, 2, 1])
        col1.markdown(f"**{record.name}**  \n{record.date.isoformat()}")
        col2.write(record.websites)
        col3.write(record.orders)
        col4.markdown(_flagged(f"{row.metrics.cr:.1f}%", flags.cr_met))
        col5.markdown(_flagged(f"{row.metrics.ac_ratio:.1f}%", flags.ac_met))
        col6.markdown(_flagged(f"¥{record.tbt_amount:,.0f}", flags.amount_met))
        col7.button(
            "🗑",
            key=f"delete_{record.name}_{record.date.isoformat()}",
            help=f"删除 {record.name} 在 {record.date.isoformat()} 的数据",
            on_click=_delete_record,
            args=(service, record.name, record.date),
        )

    st.divider()
    with st.expander("🗑 删除所有数据"):
        st.text_input("确定要删除所有数据吗？请输入密码确认", type="password", key="clear_code")
        st.button("确认删除", type="primary", on_click=_clear_all, args=(service,))


def _flagged(text: str, met: bool) -> str:
    return f":green[{text}]" if met else f":red[**{text}**]"


def _submit_entry(service: EntryService) -> None:
    state = st.session_state
    result = service.submit(
        {
            "name": state.get("entry_name", ""),
            "date": state.get("entry_date") or date.today(),
            "websites": state.get("entry_websites", 0),
            "orders": state.get("entry_orders", 0),
            "mainProducts": state.get("entry_main_products", 0),
            "acCount": state.get("entry_ac_count", 0),
            "tbtAmount": state.get("entry_tbt_amount", 0.0),
        }
    )
    state["entry_flash"] = result.notice
    if result.ok:
        state["entry_name"] = ""
        state.update(ENTRY_FIELDS)


def _delete_record(service: EntryService, name: str, entry_date: date) -> None:
    st.session_state["details_flash"] = service.delete(name, entry_date).notice


def _clear_all(service: EntryService) -> None:
    result = service.clear_all(st.session_state.get("clear_code", ""))
    st.session_state["details_flash"] = result.notice
    st.session_state["clear_code"] = ""


def _select_sort(engine: AggregationEngine) -> None:
    key = st.session_state.get("sort_key_choice")
    if key is None:
        st.session_state["sort_state"] = None
        return
    st.session_state["sort_state"] = engine.next_sort(st.session_state.get("sort_state"), key)


def _flip_sort(engine: AggregationEngine) -> None:
    current = st.session_state.get("sort_state")
    if current is not None:
        st.session_state["sort_state"] = engine.next_sort(current, current.key)


def _reset_filters() -> None:
    st.session_state["search_name"] = ""
    st.session_state["search_use_date"] = False
    st.session_state["sort_key_choice"] = None
    st.session_state["sort_state"] = None
    st.session_state["details_flash"] = Notice(NoticeLevel.SUCCESS, "筛选条件已重置")


def main() -> None:
    st.set_page_config(
        page_title="绩效平台",
        page_icon="📈",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    st.title("📈 绩效平台")
    config, warnings = load_config()
    setup_logging(config.logging)
    standards = render_sidebar(config, warnings)

    engine = AggregationEngine()
    service = EntryService.from_config(config)

    tab_home, tab_input, tab_details = st.tabs(["📊 数据看板", "✏️ 数据录入", "📋 明细查询"])

    with tab_input:
        render_input_tab(service, engine)

    loaded = service.load()
    with tab_home:
        render_home_tab(loaded, engine)

    with tab_details:
        render_details_tab(service, loaded, standards, engine)


if __name__ == "__main__":
    main()
