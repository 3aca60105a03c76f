import shortuuid


def generate_trace_id() -> str:
    return f"diag_{shortuuid.uuid()}"
