"""
metrics.py
- Error and iteration counters for the listener, exposed in Prometheus text format.
- The service count is not stored here; it is read from the ServiceCache when rendered.
"""

from threading import Lock

# --- Prometheus Metrics ---
errors_total = {}
iterations_total = 0
iteration_last_duration_seconds = 0.0

_lock = Lock()


def record_error(operation):
    with _lock:
        errors_total[operation] = errors_total.get(operation, 0) + 1


def record_iteration(duration_seconds):
    global iterations_total, iteration_last_duration_seconds
    with _lock:
        iterations_total += 1
        iteration_last_duration_seconds = duration_seconds


def reset():
    global iterations_total, iteration_last_duration_seconds
    with _lock:
        errors_total.clear()
        iterations_total = 0
        iteration_last_duration_seconds = 0.0


def render(service_count):
    """
    Render all counters as Prometheus text exposition.

    Args:
        service_count (int): Current number of cached services.
    """
    with _lock:
        errors = sorted(errors_total.items())
        iterations = iterations_total
        duration = iteration_last_duration_seconds

    lines = [
        "# HELP swarm_listener_errors_total Errors per listener operation",
        "# TYPE swarm_listener_errors_total counter",
    ]
    lines += [f'swarm_listener_errors_total{{operation="{op}"}} {count}' for op, count in errors]
    lines += [
        "# HELP swarm_listener_services Services currently tracked by the listener",
        "# TYPE swarm_listener_services gauge",
        f"swarm_listener_services {service_count}",
        "# HELP swarm_listener_iterations_total Completed reconciliation iterations",
        "# TYPE swarm_listener_iterations_total counter",
        f"swarm_listener_iterations_total {iterations}",
        "# HELP swarm_listener_iteration_last_duration_seconds Duration of the last iteration",
        "# TYPE swarm_listener_iteration_last_duration_seconds gauge",
        f"swarm_listener_iteration_last_duration_seconds {duration}",
    ]
    return "\n".join(lines) + "\n"
