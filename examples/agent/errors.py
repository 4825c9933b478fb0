from stewrd import Stewrd, StewrdAPIError, StreamEndedWithoutResult

try:
    client = Stewrd(api_key="sk-stw_invalid")
    with client.agent.stream("Hello") as stream:
        print(stream.final_response().message)
except StewrdAPIError as e:
    if e.is_auth_error:
        print("Check your STEWRD_API_KEY.")
    elif e.is_rate_limited:
        print("Rate limited, try again later.")
    elif e.is_timeout:
        print(e.message)
    elif e.is_server_error:
        print(f"Server error {e.status_code} – consider retrying.")
    else:
        print(e.to_dict())
except StreamEndedWithoutResult:
    print("The connection closed before the run finished.")
