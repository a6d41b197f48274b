from fundraiser_backend.purchases import service as purchases_service


def _row(fundraiser_id, student_id, quantity, amount, status="completed"):
    return {
        "fundraiser_id": fundraiser_id,
        "student_id": student_id,
        "quantity": quantity,
        "amount": amount,
        "payment_status": status,
        "payment_intent_id": "ref",
    }

def test_summarize_counts_completed_only():
    rows = [_row(1, 7, 2, 2000), _row(1, 7, 1, 1000), _row(1, 7, 5, 5000, status="failed")]
    assert purchases_service.summarize(rows) == {"purchases": 2, "tickets_sold": 3, "amount_cents": 3000}

def test_sales_summary_by_student_groups_by_fundraiser(fake_db):
    fake_db.purchases.extend([_row(2, 7, 1, 1000), _row(1, 7, 2, 2000), _row(1, 7, 1, 1000), _row(1, 9, 4, 4000)])

    summary = purchases_service.sales_summary_by_student(7)

    assert summary == [
        {"fundraiser_id": 1, "fundraiser_name": "Gala de printemps", "purchases": 2, "tickets_sold": 3, "amount_cents": 3000},
        {"fundraiser_id": 2, "fundraiser_name": "Tombola", "purchases": 1, "tickets_sold": 1, "amount_cents": 1000},
    ]

def test_sales_summary_for_student_without_sales(fake_db):
    assert purchases_service.sales_summary_by_student(9) == []

def test_fundraiser_sales(fake_db):
    fake_db.purchases.extend([_row(1, None, 2, 2000), _row(2, 7, 1, 1000)])
    result = purchases_service.fundraiser_sales(1)
    assert len(result["purchases"]) == 1
    assert result["summary"]["tickets_sold"] == 2
