"""
Vehicle Availability Dashboard

A Streamlit dashboard that reconciles the logistics export against the
sales-order export and shows how many cars per variant are on their way,
already assigned or still waiting for a car.
Run with: streamlit run app.py
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import streamlit as st
import plotly.graph_objects as go

from core.analysis import (
    filter_variants,
    group_by_model,
    recalculate_summary,
    sort_variants,
    status_tab_counts,
    unique_filter_values,
)
from core.config import get_settings
from core.errors import ExportError, ReconciliationError, user_message
from core.export import (
    build_export_table,
    default_filename,
    export_csv,
    export_filtered_xlsx,
    export_report_xlsx,
)
from core.observability import configure_logging, get_logger
from dealership.pipeline import run_analysis
from dealership.workbooks import validate_upload

settings = get_settings()
configure_logging(settings.log_level, json_format=settings.log_json)
logger = get_logger("dealership.app")

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

STATUS_LABELS = {
    "all": "전체",
    "in_transit": "운송중",
    "pending_assigned": "배정완료",
    "pending_unassigned": "배정대기",
}

SORT_LABELS = {
    "model": "모델명",
    "total_count": "총수량",
    "delivery_date": "인도예정일",
}

# Page config
st.set_page_config(
    page_title="차량 대기 현황",
    page_icon="🚗",
    layout="wide",
)

st.title("🚗 차량 대기 현황 대시보드")
st.caption("물류 파일과 판매 파일을 업로드하면 모델별 운송중 / 배정 현황을 계산합니다.")


@st.cache_data(show_spinner=False)
def analyze(logistics_bytes: bytes, sales_bytes: bytes):
    """Run the analysis (cached per pair of uploads)."""
    return run_analysis(logistics_bytes, sales_bytes, settings=settings)


# --- Upload ---
upload_col1, upload_col2 = st.columns(2)
with upload_col1:
    logistics_file = st.file_uploader("물류 파일 (Logistics)", type=["xlsx", "xlsm"])
with upload_col2:
    sales_file = st.file_uploader("판매 파일 (Sales)", type=["xlsx", "xlsm"])

if logistics_file is None or sales_file is None:
    st.info("두 파일을 모두 업로드하면 분석이 시작됩니다.")
    st.stop()

try:
    validate_upload(logistics_file.name, logistics_file.size, settings)
    validate_upload(sales_file.name, sales_file.size, settings)
    with st.spinner("엑셀 파일을 분석하는 중입니다..."):
        run = analyze(logistics_file.getvalue(), sales_file.getvalue())
except ReconciliationError as e:
    logger.warning(
        "Analysis failed", extra_fields={"category": e.category, "error": str(e)}
    )
    st.error(user_message(e))
    st.stop()

variants = run.result.variants
if not variants:
    st.warning("두 파일에서 읽을 수 있는 차량 데이터가 없습니다.")
    st.stop()

# --- Sidebar Filters ---
options = unique_filter_values(variants)
tab_counts = status_tab_counts(variants)

with st.sidebar:
    st.header("필터")
    search_query = st.text_input("검색", placeholder="모델, 색상, 트림, 연식")
    model_filter = st.selectbox("모델", ["전체"] + options["models"])
    color_filter = st.selectbox("외장색상", ["전체"] + options["colors"])
    trim_filter = st.selectbox("내장/트림", ["전체"] + options["trims"])
    status_filter = st.radio(
        "상태",
        list(STATUS_LABELS),
        format_func=lambda s: f"{STATUS_LABELS[s]} ({tab_counts[s]})",
    )

    st.header("정렬")
    sort_by = st.selectbox("정렬 기준", list(SORT_LABELS), format_func=SORT_LABELS.get)
    order = st.radio("순서", ["asc", "desc"], format_func={"asc": "오름차순", "desc": "내림차순"}.get, horizontal=True)

filtered = filter_variants(
    variants,
    model=None if model_filter == "전체" else model_filter,
    color=None if color_filter == "전체" else color_filter,
    trim=None if trim_filter == "전체" else trim_filter,
    status=status_filter,
    search_query=search_query,
)
filtered = sort_variants(filtered, sort_by=sort_by, order=order)
summary = recalculate_summary(filtered)

# --- Key Metrics Row ---
st.header("주요 지표")
col1, col2, col3, col4, col5 = st.columns(5)

with col1:
    st.metric("총 모델 수", f"{summary.total_models:,}")

with col2:
    st.metric(
        "총 가용 차량",
        f"{summary.total_vehicles:,}",
        delta="부족" if summary.total_vehicles < 0 else None,
        delta_color="inverse",
    )

with col3:
    st.metric("운송중", f"{summary.in_transit:,}")

with col4:
    st.metric("배정 완료", f"{summary.pending_assigned:,}")

with col5:
    st.metric(
        "배정 대기",
        f"{summary.pending_unassigned:,}",
        delta=f"미매치 모델 {summary.unmatched_models}" if summary.unmatched_models else None,
        delta_color="off",
    )

st.divider()

# --- Two Column Layout ---
left_col, right_col = st.columns([2, 1])
groups = group_by_model(filtered, sort_by="total_count" if sort_by == "total_count" else "model", order=order)

with left_col:
    st.subheader(f"📋 모델별 현황 ({len(groups)}개 모델)")

    if groups:
        for group in groups:
            label = (
                f"{group.model_name} · 총 {group.total_count}대 "
                f"(운송중 {group.in_transit} / 배정 {group.pending_assigned} / 대기 {group.pending_unassigned})"
            )
            with st.expander(label):
                if group.earliest_delivery_date:
                    st.caption(f"가장 빠른 인도예정일: {group.earliest_delivery_date}")
                if group.salespeople:
                    st.caption(f"대기 고객 담당: {', '.join(group.salespeople)}")
                st.dataframe(
                    build_export_table(group.variants),
                    use_container_width=True,
                    hide_index=True,
                )
    else:
        st.info("조건에 맞는 차량이 없습니다.")

with right_col:
    st.subheader("📊 모델별 수량")

    top_groups = sorted(groups, key=lambda g: g.in_transit + g.pending_assigned + g.pending_unassigned, reverse=True)[:15]
    names = [g.model_name for g in top_groups]

    fig_counts = go.Figure(
        data=[
            go.Bar(name="운송중", y=names, x=[g.in_transit for g in top_groups], orientation="h", marker_color="#3498db"),
            go.Bar(name="배정완료", y=names, x=[g.pending_assigned for g in top_groups], orientation="h", marker_color="#2ecc71"),
            go.Bar(name="배정대기", y=names, x=[g.pending_unassigned for g in top_groups], orientation="h", marker_color="#e67e22"),
        ]
    )
    fig_counts.update_layout(
        barmode="stack",
        height=max(250, 30 * len(names) + 100),
        margin=dict(t=20, b=20, l=20, r=20),
        yaxis=dict(autorange="reversed"),
        legend=dict(orientation="h", yanchor="bottom", y=-0.2),
    )
    st.plotly_chart(fig_counts, use_container_width=True)

st.divider()

# --- Downloads ---
st.subheader("⬇️ 내보내기")
dl_col1, dl_col2, dl_col3 = st.columns(3)

with dl_col1:
    st.download_button(
        "전체 보고서 (Excel)",
        data=export_report_xlsx(run.result),
        file_name=default_filename("report"),
        mime=XLSX_MIME,
    )

with dl_col2:
    try:
        filtered_xlsx = export_filtered_xlsx(filtered, status=status_filter)
    except ExportError as e:
        st.caption(user_message(e))
    else:
        st.download_button(
            f"{STATUS_LABELS[status_filter]} 목록 (Excel)",
            data=filtered_xlsx,
            file_name=default_filename(status_filter),
            mime=XLSX_MIME,
        )

with dl_col3:
    st.download_button(
        "현재 목록 (CSV)",
        data=export_csv(filtered),
        file_name=default_filename("report", extension="csv"),
        mime="text/csv",
    )

st.divider()

# --- Data Quality Section ---
with st.expander("📋 데이터 품질 리포트"):
    quality_col1, quality_col2 = st.columns(2)

    for column, (title, report) in zip(
        (quality_col1, quality_col2),
        (("**물류 파일**", run.logistics_report), ("**판매 파일**", run.sales_report)),
    ):
        with column:
            st.markdown(title)
            stats = report.summary()
            st.markdown(
                f"전체 {stats['total_rows']:,}행 중 {stats['extracted']:,}건 추출, "
                f"{stats['skipped']:,}행 제외"
            )
            if report.layout:
                st.caption(f"레이아웃: {report.layout}")
            if report.issues:
                for issue in report.issues:
                    icon = "🔴" if issue.severity == "critical" else "🟡" if issue.severity == "warning" else "🔵"
                    st.markdown(f"{icon} {issue.column}: {issue.description}")
            else:
                st.markdown("✅ No issues found")
            if report.status_counts:
                st.caption(
                    "상태 분포: "
                    + ", ".join(f"{k} {v:,}" for k, v in sorted(report.status_counts.items()))
                )

# --- Methodology Section ---
st.divider()
st.subheader("📐 계산 방식")

method_col1, method_col2 = st.columns(2)

with method_col1:
    st.markdown("**매칭 기준**")
    st.markdown("""
    1. 모델명에서 브랜드 접두어(Mercedes-AMG 등)와 악센트를 제거하고 소문자로 통일
    2. `모델 + 외장색상 + 트림 + 연식` 을 키로 두 파일을 매칭
    3. 한쪽 파일에만 있는 키도 결과에 포함 (상대편 수량 0)
    """)

with method_col2:
    st.markdown("**수량 계산**")
    st.markdown("""
    - **운송중:** 물류 상태가 운송중 / VPC입고 인 차량
    - **배정완료:** 커미션 번호가 있는 판매 주문
    - **배정대기:** 커미션 번호가 없는 판매 주문
    - **총수량 = 운송중 + 배정완료 − 배정대기** (음수면 차량 부족)
    """)

# --- Footer ---
st.divider()
st.caption(
    "Built with Streamlit | "
    f"분석 ID: {run.run_id} | "
    f"처리 시간: {run.elapsed_seconds:.1f}초 | "
    f"물류: {run.logistics_report.extracted_records:,}대 | "
    f"판매: {run.sales_report.extracted_records:,}건"
)
