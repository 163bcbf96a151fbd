from hierarchy import Area, Branch, Coordinate, Region
from synthesizer import DAILY_NUMERIC_FIELDS, MONTHLY_NUMERIC_FIELDS, DailyMetrics, MonthlyMetrics


def make_branch(branch_id, status="Stagnant", volume_class="Medium", area_id="T-A1", region_id="T"):
    return Branch(
        id=branch_id,
        code=f"KC{branch_id[-4:]}",
        name=branch_id,
        area_id=area_id,
        region_id=region_id,
        volume_class=volume_class,
        status=status,
        coordinates=Coordinate(longitude=110.0, latitude=-7.0),
    )


def make_region(branches, region_id="T", area_id="T-A1", name="Test Area"):
    area = Area(id=area_id, name=name, region_id=region_id, branches=tuple(branches))
    return Region(id=region_id, name="Test Region", areas=(area,))


def make_daily(branch_id, date, **values):
    fields = {name: 0 for name in DAILY_NUMERIC_FIELDS}
    fields.update(values)
    return DailyMetrics(date=date, branch_id=branch_id, **fields)


def make_monthly(branch_id, month, **values):
    fields = {name: 0 for name in MONTHLY_NUMERIC_FIELDS}
    fields.update(values)
    return MonthlyMetrics(month=month, branch_id=branch_id, **fields)
