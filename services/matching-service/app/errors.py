class MatchingError(Exception):
    pass


class MissingProfileError(MatchingError):
    def __init__(self, volunteer_id: str):
        super().__init__(f"Volunteer profile not found: {volunteer_id}")
        self.volunteer_id = volunteer_id
