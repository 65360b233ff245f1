"""JSON API routes. Every handler answers with the ``{"success": ...}`` envelope."""

from datetime import datetime
from typing import Callable

from flask import Blueprint, current_app, jsonify, request

from . import area, building, complexes, dashboard, stats, subscription, trade
from .codes import DEFAULT_DISTRICT, DEFAULT_REGION
from .dates import current_month, current_year, current_year_month, previous_year_month, today_compact
from .fanout import ChannelRegistry
from .handler import Envelope


bp = Blueprint("estate", __name__, url_prefix="/api")

CHANNELS_EXTENSION = "estate_channels"


def _now() -> datetime:
    return current_app.config["CLOCK"]()


def _arg(name: str, default: str = "") -> str:
    return request.args.get(name, type=str) or default


def _respond(envelope: Envelope):
    body, status = envelope
    return jsonify(body), status


def _paging():
    return _arg("page", "1"), _arg("perPage", "100")


def _run_aggregate(aggregate: Callable[..., Envelope], *args, **kwargs):
    """Run a dashboard aggregate, superseding any earlier one on the same ``channel``."""

    registry: ChannelRegistry = current_app.extensions[CHANNELS_EXTENSION]
    with registry.track(_arg("channel") or None) as token:
        return _respond(aggregate(*args, cancel_token=token, **kwargs))


# ===== 주소 / 건물 =====
@bp.route("/address/dong")
def address_dong():
    return _respond(building.dong_codes(_arg("district", DEFAULT_DISTRICT)))


@bp.route("/building/register")
def building_register():
    return _respond(
        building.building_register(_arg("sigunguCd"), _arg("bjdongCd"), _arg("bun"), _arg("ji"))
    )


@bp.route("/building/energy")
def building_energy():
    return _respond(
        building.building_energy(
            _arg("sigunguCd"),
            _arg("bjdongCd"),
            _arg("bun"),
            _arg("ji"),
            _arg("year", current_year(_now())),
        )
    )


# ===== 실거래 =====
def _district_month():
    now = _now()
    return _arg("district", DEFAULT_DISTRICT), _arg("year", current_year(now)), _arg("month", current_month(now))


@bp.route("/trade/apartment")
def trade_apartment():
    district, year, month = _district_month()
    return _respond(trade.apartment_trades(district, year, month, _arg("type", "sale")))


@bp.route("/trade/officetel")
def trade_officetel():
    district, year, month = _district_month()
    return _respond(trade.officetel_trades(district, year, month, _arg("type", "sale")))


@bp.route("/trade/house")
def trade_house():
    return _respond(trade.house_trades(*_district_month()))


@bp.route("/trade/commercial")
def trade_commercial():
    return _respond(trade.commercial_trades(*_district_month()))


# ===== 단지 =====
@bp.route("/complex/info")
def complex_info():
    page, per_page = _paging()
    return _respond(
        complexes.complex_info(
            _arg("complexPk"),
            _arg("address"),
            _arg("approvalDateStart"),
            _arg("approvalDateEnd"),
            page,
            per_page,
        )
    )


# ===== 청약 =====
@bp.route("/subscription/competition")
def subscription_competition():
    page, per_page = _paging()
    return _respond(
        subscription.competition_rates(
            _arg("houseManageNo"), _arg("pblancNo"), _arg("resideSecd"), page, per_page
        )
    )


@bp.route("/subscription/account")
def subscription_account():
    page, per_page = _paging()
    return _respond(
        subscription.account_stats(
            _arg("yearMonth"), _arg("areaCode"), _arg("depositItem"), page, per_page
        )
    )


@bp.route("/subscription/schedule")
def subscription_schedule():
    page, per_page = _paging()
    return _respond(
        subscription.subscription_schedule(
            _arg("houseName"),
            _arg("areaCode"),
            _arg("announceDateStart"),
            _arg("announceDateEnd"),
            page,
            per_page,
        )
    )


@bp.route("/subscription/info")
def subscription_info():
    return _respond(
        subscription.opening_info(today_compact(_now()), _arg("region"), _arg("houseType", "APT"))
    )


# ===== 지가 / 통계 =====
@bp.route("/land/price-change")
def land_price_change():
    now = _now()
    year_month = _arg("yearMonth")
    if not year_month:
        year = _arg("year")
        year_month = f"{year}{current_month(now)}" if year else current_year_month(now)
    page, per_page = _paging()
    return _respond(
        stats.land_price_change(year_month, _arg("regionCode") or _arg("region"), page, per_page)
    )


@bp.route("/stats/price")
def stats_price():
    return _respond(stats.price_stats(_arg("region", DEFAULT_REGION), _arg("year", current_year(_now()))))


# ===== 지역 =====
@bp.route("/area/population")
def area_population():
    return _respond(
        area.population(_arg("ym", previous_year_month(_now())), _arg("admmCd", area.SEOUL_ADMM_CODE))
    )


@bp.route("/area/school")
def area_school():
    return _respond(area.schools())


# ===== 대시보드 =====
@bp.route("/dashboard/market-listing")
def dashboard_market_listing():
    now = _now()
    return _run_aggregate(
        dashboard.market_listing,
        _arg("districts"),
        _arg("year", current_year(now)),
        _arg("month", current_month(now)),
    )


@bp.route("/dashboard/market-volume")
def dashboard_market_volume():
    return _run_aggregate(dashboard.market_volume, _arg("districts"), _arg("year", current_year(_now())))


@bp.route("/dashboard/region-compare")
def dashboard_region_compare():
    return _run_aggregate(dashboard.region_compare, _arg("regions"), _arg("year", current_year(_now())))


@bp.route("/dashboard/jeonse-ratio")
def dashboard_jeonse_ratio():
    return _run_aggregate(dashboard.jeonse_ratio, _arg("regions"), _arg("year", current_year(_now())))


@bp.route("/dashboard/complex-trades")
def dashboard_complex_trades():
    return _run_aggregate(
        dashboard.complex_trades, _arg("district", DEFAULT_DISTRICT), _arg("name"), _now()
    )


@bp.route("/dashboard/building")
def dashboard_building():
    return _run_aggregate(
        dashboard.building_overview,
        _arg("sigunguCd"),
        _arg("bjdongCd"),
        _arg("bun"),
        _arg("ji"),
        _arg("year", current_year(_now())),
    )
