from typing import Any, Dict, Iterable, List

from fundraiser_backend.fundraisers import repository as fundraisers_repo
from . import repository

def summarize(rows: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Totaux des achats 'completed' (billets et montant en centimes)."""
    tickets = 0
    amount = 0
    count = 0
    for row in rows:
        if row.get("payment_status") != "completed":
            continue
        count += 1
        tickets += int(row.get("quantity") or 0)
        amount += int(row.get("amount") or 0)
    return {"purchases": count, "tickets_sold": tickets, "amount_cents": amount}

def sales_summary_by_student(student_id: int) -> List[Dict[str, Any]]:
    """
    Ventes créditées à un étudiant, regroupées par collecte.
    - Retour: [{fundraiser_id, fundraiser_name, tickets_sold, amount_cents, purchases}]
    """
    by_fundraiser: Dict[int, List[Dict[str, Any]]] = {}
    for row in repository.list_by_student(student_id):
        by_fundraiser.setdefault(int(row["fundraiser_id"]), []).append(row)
    names = fundraisers_repo.get_fundraisers_map(by_fundraiser.keys()) if by_fundraiser else {}
    summary = []
    for fundraiser_id, rows in sorted(by_fundraiser.items()):
        summary.append({
            "fundraiser_id": fundraiser_id,
            "fundraiser_name": (names.get(fundraiser_id) or {}).get("name"),
            **summarize(rows),
        })
    return summary

def fundraiser_sales(fundraiser_id: int) -> Dict[str, Any]:
    rows = repository.list_by_fundraiser(fundraiser_id)
    return {"purchases": rows, "summary": summarize(rows)}
