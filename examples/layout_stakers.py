"""Example pipeline: group staking records, lay out owners and fit the view."""

from stakemap import (
    Size,
    StakeRecord,
    ViewportController,
    build_entities,
    compute_layout,
    layout_bounds_for,
    layout_report,
)

RECORDS = [
    {"tokenId": "101", "owner": "0x9F2c", "rarity": "mystic", "stakingDuration": 30},
    {"tokenId": "102", "owner": "0x9f2c", "rarity": "rare", "stakingDuration": 30},
    {"tokenId": "205", "owner": "0x41aa", "rarity": "epic", "stakingDuration": 12},
    {"tokenId": "206", "owner": "0x41aa", "rarity": "legendary", "stakingDuration": 3},
    {"tokenId": "310", "owner": "0x0bee", "rarity": "rare", "stakingDuration": 1},
    {"tokenId": "311", "owner": "0x77de", "rarity": "rare", "isStaked": False},
]

entities = build_entities(StakeRecord.from_mapping(raw) for raw in RECORDS)
positioned = compute_layout(entities)
bounds = layout_bounds_for([entity.size for entity in positioned])
report = layout_report(positioned, bounds)

print("Markers:")
for entity in positioned:
    print(
        f"  {entity.id}: power={entity.weight:.0f} size={entity.size:.1f} "
        f"at ({entity.position.x:.1f}, {entity.position.y:.1f})"
    )
print("Max overlap:", report.max_overlap)

view = ViewportController(Size(1280, 720))
print("Fitted view:", view.fit_to_bounds(positioned).to_dict())
