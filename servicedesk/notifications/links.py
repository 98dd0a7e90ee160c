"""Deep links understood by the web front-end."""


def employee_ticket(ticket_id: int) -> str:
    return f"/employee/tickets/{ticket_id}"


def technician_ticket(ticket_id: int) -> str:
    return f"/technician/tickets/{ticket_id}"


def admin_ticket(ticket_id: int) -> str:
    return f"/tickets/{ticket_id}"


def technician_task(task_id: int) -> str:
    return f"/technician/tasks/{task_id}"


def admin_task(task_id: int) -> str:
    return f"/tasks/{task_id}"
