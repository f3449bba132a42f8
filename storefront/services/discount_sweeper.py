"""
折扣码后台清理任务
定期停用使用次数已满或已过期的折扣码，由应用生命周期启动和关闭
"""

from datetime import date, datetime
from typing import Optional, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.discount import SweepReport
from storefront.repositories.discount_repository import DiscountRepository
from storefront.services.common_cache import SimpleCache, discount_cache, DISCOUNT_LIST_KEY

logger = structlog.get_logger()


class DiscountSweeper:
    """折扣码停用任务"""

    JOB_ID = "discount_sweep"
    IMMEDIATE_JOB_ID = "discount_sweep_now"

    def __init__(
        self,
        session_maker: Callable[[], AsyncSession],
        cache: SimpleCache = discount_cache,
        interval_seconds: int = 300
    ):
        self.session_maker = session_maker
        self.cache = cache
        self.interval_seconds = interval_seconds
        self.scheduler = AsyncIOScheduler()

        # 运行统计
        self.runs = 0
        self.deactivated_total = 0
        self.failures_total = 0
        self.last_run_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """启动定时清理"""
        self.scheduler.add_job(
            self.sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Deactivate exhausted and expired discount codes",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info("折扣码清理任务已启动", interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        """停止定时清理"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("折扣码清理任务已停止")

    def request_sweep(self) -> bool:
        """安排一次立即执行的清理，已有待执行的请求时合并"""
        if not self.scheduler.running:
            return False

        self.scheduler.add_job(
            self.sweep,
            id=self.IMMEDIATE_JOB_ID,
            name="Deactivate discount codes on demand",
            replace_existing=True
        )
        return True

    async def sweep(self, today: Optional[date] = None) -> SweepReport:
        """执行一次清理，单个折扣码失败不影响其他折扣码"""
        today = today or date.today()
        report = SweepReport()
        self.runs += 1

        try:
            async with self.session_maker() as session:
                repo = DiscountRepository(session)
                exhausted = await repo.find_exhausted_codes()
                expired = await repo.find_expired_codes(today)
        except Exception as e:
            self.failures_total += 1
            self.last_error = str(e)
            logger.error("折扣码清理扫描失败", error=str(e))
            report.finished_at = datetime.now()
            self.last_run_at = report.finished_at
            return report

        for discount_id in sorted(set(exhausted) | set(expired)):
            try:
                if await self._deactivate_one(discount_id, today):
                    report.deactivated_ids.append(discount_id)
            except Exception as e:
                report.failed_ids.append(discount_id)
                self.last_error = str(e)
                logger.error("折扣码停用失败", discount_id=discount_id, error=str(e))

        if report.deactivated_ids:
            await self.cache.delete(DISCOUNT_LIST_KEY)

        self.deactivated_total += len(report.deactivated_ids)
        self.failures_total += len(report.failed_ids)
        report.finished_at = datetime.now()
        self.last_run_at = report.finished_at

        logger.info(
            "折扣码清理完成",
            deactivated=report.deactivated_ids,
            failed=report.failed_ids
        )
        return report

    async def _deactivate_one(self, discount_id: int, today: date) -> bool:
        """在独立事务中重新确认并停用单个折扣码"""
        async with self.session_maker() as session:
            repo = DiscountRepository(session)
            db_discount = await repo.get_by_id(discount_id, for_update=True)
            if db_discount is None or not db_discount.active:
                return False

            expired = db_discount.end_date is not None and db_discount.end_date <= today
            exhausted = False
            if db_discount.usage_limit is not None:
                exhausted = await repo.count_usages(discount_id) >= db_discount.usage_limit

            if not (expired or exhausted):
                return False

            changed = await repo.deactivate(discount_id)
            await session.commit()
            return changed

    def stats(self) -> dict:
        """运行统计"""
        return {
            "enabled": self.running,
            "interval_seconds": self.interval_seconds,
            "runs": self.runs,
            "deactivated_total": self.deactivated_total,
            "failures_total": self.failures_total,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_error": self.last_error
        }
