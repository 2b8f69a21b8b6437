from gymportal.models.database import get_store, utc_now_iso


class DietPlan:
    """At most one plan per member, stored under ``diets/{member_id}``."""

    COLLECTION = 'diets'

    def __init__(self, member_id=None, plan=None, updated_at=None):
        self.member_id = member_id
        self.plan = plan
        self.updated_at = updated_at

    @classmethod
    def get_for_member(cls, member_id):
        if not member_id:
            return None
        snapshot = get_store().get(cls.COLLECTION, member_id)
        if not snapshot.exists:
            return None
        return cls(member_id=member_id, plan=snapshot.get('plan'),
                   updated_at=snapshot.get('updatedAt'))

    def save(self):
        """Overwrite whatever plan the member had"""
        self.updated_at = utc_now_iso()
        get_store().set(self.COLLECTION, self.member_id,
                        {'plan': self.plan, 'updatedAt': self.updated_at})
        return self.member_id
