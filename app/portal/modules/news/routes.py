from flask import Blueprint, current_app, jsonify

from app.portal.db import db_session
from app.portal.modules.news.service import latest, news_dict

bp = Blueprint("news", __name__)


@bp.get("")
def list_news():
    s = db_session()
    items = latest(s, int(current_app.config.get("NEWS_FEED_LIMIT") or 5))
    return jsonify([news_dict(i) for i in items])
