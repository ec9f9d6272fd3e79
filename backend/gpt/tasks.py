from celery import shared_task


@shared_task
def analyze_topics_task(conversation_ids):
    from gpt.analysis import analyze_conversations

    return analyze_conversations(conversation_ids).as_dict()
