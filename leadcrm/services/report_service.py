from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import datetime, timedelta

from leadcrm.models.customer import Customer
from leadcrm.models.lead import Lead
from leadcrm.models.user import User
from leadcrm.services.permissions import report_scope_filter


class ReportService:
    def __init__(self, db: Session, user: User):
        self.db = db
        self.user = user

    def _leads(self, *columns):
        query = self.db.query(*columns) if columns else self.db.query(Lead)
        scope = report_scope_filter(self.user, Lead)
        return query.filter(scope) if scope is not None else query

    def _customers(self, *columns):
        query = self.db.query(*columns) if columns else self.db.query(Customer)
        scope = report_scope_filter(self.user, Customer)
        return query.filter(scope) if scope is not None else query

    def _growth(self, current: int, previous: int):
        if previous == 0:
            return 0.0
        return round(((current - previous) / previous) * 100, 1)

    def _distribution(self, column):
        rows = (
            self._leads(column, func.count(Lead.id))
            .group_by(column)
            .order_by(func.count(Lead.id).desc())
            .all()
        )
        return [{"value": value, "count": count} for value, count in rows]

    # --- DASHBOARD ---

    def dashboard(self, period_days: int = 30):
        now = datetime.utcnow()
        week_ago = now - timedelta(days=7)
        two_weeks_ago = now - timedelta(days=14)
        period_start = now - timedelta(days=period_days)

        total_leads = self._leads().count()
        new_this_week = self._leads().filter(Lead.created_at >= week_ago).count()
        previous_week = self._leads().filter(Lead.created_at >= two_weeks_ago, Lead.created_at < week_ago).count()
        converted = self._leads().filter(Lead.customer_id.isnot(None)).count()
        total_customers = self._customers().count()

        day = func.date(Lead.created_at)
        recent = (
            self._leads(day, func.count(Lead.id))
            .filter(Lead.created_at >= period_start)
            .group_by(day)
            .order_by(day.desc())
            .limit(7)
            .all()
        )

        return {
            "summary": {
                "totalLeads": total_leads,
                "newLeadsThisWeek": new_this_week,
                "convertedLeads": converted,
                "totalCustomers": total_customers,
                "conversionRate": round(converted / total_leads * 100, 1) if total_leads else 0.0,
                "weekGrowth": self._growth(new_this_week, previous_week),
            },
            "charts": {
                "statusDistribution": [{"status": d["value"], "count": d["count"]} for d in self._distribution(Lead.status)],
                "sourceDistribution": [{"source": d["value"], "count": d["count"]} for d in self._distribution(Lead.source)],
                "recentActivity": [{"date": str(d), "leads_count": c} for d, c in recent],
            },
            "_meta": {
                "userId": self.user.id,
                "userRole": self.user.role,
                "period": period_days,
            },
        }
