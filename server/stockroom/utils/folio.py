from sqlalchemy.orm import Session


def next_folio(db: Session, model, prefix: str) -> str:
    """Next ``<prefix>-NNNN`` folio after the most recently created row."""
    latest = (
        db.query(model.folio)
        .filter(model.folio.like(f"{prefix}-%"))
        .order_by(model.id.desc())
        .first()
    )
    sequence = 1
    if latest and latest[0]:
        try:
            sequence = int(str(latest[0]).split("-")[-1]) + 1
        except (ValueError, TypeError):
            sequence = 1
    return f"{prefix}-{sequence:04d}"
