from .streaming import collect_text_from, stream_text_with_final_event, text_stream_from
