import pytest

from kmrl_induction.models.audit import AuditAction
from kmrl_induction.models.trainset import ConflictType, Decision, InductionFilters, RuleOverrides
from kmrl_induction.services.induction_service import TrainsetNotFoundError


@pytest.mark.asyncio
async def test_list_with_diagnostics(service):
    trainsets = await service.list_with_diagnostics()

    assert [t.id for t in trainsets] == [f"TS-0{n}" for n in range(1, 8)]
    assert all(t.explanation is not None for t in trainsets)
    assert all(t.last_conflict_check is not None for t in trainsets)


@pytest.mark.asyncio
async def test_list_conflicts_skips_clean_trainsets(service):
    conflicts = await service.list_conflicts()
    assert [c.trainset_id for c in conflicts] == ["TS-03", "TS-07"]


@pytest.mark.asyncio
async def test_get_missing_trainset(service):
    with pytest.raises(TrainsetNotFoundError):
        await service.get_with_diagnostics("TS-99")


@pytest.mark.asyncio
async def test_forced_revenue_is_flagged_and_audited(service, repository):
    evaluated = await service.update_decision("TS-03", Decision.REVENUE, manual_override=True, actor="controller")

    assert evaluated.recommendation == Decision.REVENUE
    assert evaluated.manual_override is True
    assert [o.code for o in evaluated.explanation.overrides] == ["MANUAL_OVERRIDE", "REVENUE_WITH_BLOCKERS"]
    assert [c.type for c in evaluated.conflicts] == [
        ConflictType.MISSING_CERTIFICATE,
        ConflictType.MISSING_CERTIFICATE,
        ConflictType.CLEANING_CLASH,
        ConflictType.STABLING_CLASH,
    ]

    logs = await service.list_audit_logs(trainset_id="TS-03")
    assert len(logs) == 1
    assert logs[0].action == AuditAction.UPDATE_DECISION
    assert logs[0].actor == "controller"
    assert logs[0].before["recommendation"] == "IBL"
    assert logs[0].after["recommendation"] == "REVENUE"


@pytest.mark.asyncio
async def test_update_without_recommendation_changes_nothing(service):
    evaluated = await service.update_decision("TS-02", None)

    assert evaluated.recommendation == Decision.STANDBY
    assert await service.list_audit_logs() == []


@pytest.mark.asyncio
async def test_update_missing_trainset(service):
    with pytest.raises(TrainsetNotFoundError):
        await service.update_decision("TS-99", Decision.IBL)


@pytest.mark.asyncio
async def test_scored_induction_with_overrides(service):
    page = await service.scored_induction(weight_overrides={"brandingHigh": "-100"}, limit=3)

    assert page.weights.branding_high == -100
    assert page.total == 7
    assert [t.id for t in page.ranked] == ["TS-05", "TS-02", "TS-01"]


@pytest.mark.asyncio
async def test_scored_induction_uses_persisted_weights(service):
    await service.update_scoring_config({"fitnessWarn": 40, "bogus": 1}, actor="planner")
    page = await service.scored_induction(filters=InductionFilters(decision="STANDBY"))

    assert page.weights.fitness_warn == 40
    assert [t.id for t in page.ranked] == ["TS-05", "TS-02"]
    assert page.ranked[0].score == 24 + 45


@pytest.mark.asyncio
async def test_scoring_config_lifecycle(service):
    config = await service.get_scoring_config()
    assert config["key"] == "default"
    assert config["weights"]["fitnessPass"] == 10

    updated = await service.update_scoring_config({"fitnessPass": 15}, actor="planner")
    assert updated["weights"]["fitnessPass"] == 15
    assert updated["updatedBy"] == "planner"

    reset = await service.reset_scoring_config(actor="planner")
    assert reset["weights"]["fitnessPass"] == 10
    assert (await service.get_weights()).fitness_pass == 10

    actions = [log.action for log in await service.list_audit_logs()]
    assert actions == [AuditAction.SCORING_CONFIG_RESET, AuditAction.SCORING_CONFIG_UPDATED]


@pytest.mark.asyncio
async def test_simulation_does_not_persist(service):
    before = [t.to_wire() for t in await service.repository.list_trainsets()]
    result = await service.simulate(RuleOverrides(ignore_job_cards=True, ignore_cleaning=True))

    assert result.counts.REVENUE + result.counts.STANDBY + result.counts.IBL == 7
    assert [t.to_wire() for t in await service.repository.list_trainsets()] == before


@pytest.mark.asyncio
async def test_ml_suggestions_respect_limit(service):
    report = await service.ml_suggestions(limit=3)
    assert len(report.suggestions) == 3


@pytest.mark.asyncio
async def test_get_conflicts_for_one_trainset(service):
    result = await service.get_conflicts("TS-07")
    assert result.trainset_id == "TS-07"
    assert [c.type for c in result.conflicts] == [
        ConflictType.MISSING_CERTIFICATE,
        ConflictType.MISSING_CERTIFICATE,
        ConflictType.MILEAGE_IMBALANCE,
    ]

    assert (await service.get_conflicts("TS-01")).conflicts == []
    with pytest.raises(TrainsetNotFoundError):
        await service.get_conflicts("TS-99")
